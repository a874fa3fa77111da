"""Stage transition rules for deals.

Crossing into certain stages stamps a timestamp on the deal the first time it
happens. The rules are pure: callers pass the previous stage, the requested
stage, the timestamps already resolved for the write and the current time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, timezone
from typing import Any, Final, Mapping

from dealflow.models.deal import DealStage

logger = logging.getLogger(__name__)

STAGE_TIMESTAMP_FIELDS: Final[dict[DealStage, str]] = {
    DealStage.SOURCING_MEETING_BOOKED: "sourcing_meeting_booked_at",
    DealStage.PARTNER_REVIEW: "partner_review_started_at",
    DealStage.SIGNED_AND_WIRED: "close_date",
}


@dataclass(frozen=True)
class StageTimestamps:
    sourcing_meeting_booked_at: datetime | None = None
    partner_review_started_at: datetime | None = None
    close_date: datetime | None = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(field.name for field in fields(cls))

    @classmethod
    def from_source(cls, source: Any) -> StageTimestamps:
        return cls(**{name: getattr(source, name, None) for name in cls.field_names()})

    def as_dict(self) -> dict[str, datetime | None]:
        return {name: getattr(self, name) for name in self.field_names()}


def apply_transition(
    previous_stage: DealStage | None,
    requested_stage: DealStage,
    timestamps: StageTimestamps,
    now: datetime,
) -> StageTimestamps:
    """Return the timestamps after moving from previous_stage to requested_stage.

    Only a change of stage has side effects, and an already-set timestamp is
    never replaced. ``previous_stage`` is None for newly created deals.
    """
    if previous_stage == requested_stage:
        return timestamps
    target = STAGE_TIMESTAMP_FIELDS.get(requested_stage)
    if target is None or getattr(timestamps, target) is not None:
        return timestamps
    logger.debug(
        "pipeline.stage.stamped",
        extra={
            "previous_stage": previous_stage.value if previous_stage else None,
            "stage": requested_stage.value,
            "field": target,
        },
    )
    return replace(timestamps, **{target: now})


def resolve_timestamps(
    current: StageTimestamps,
    supplied: Mapping[str, Any],
) -> StageTimestamps:
    """Overlay caller-supplied timestamp values on the stored ones.

    Explicit nulls clear a value; unparseable input keeps the stored value.
    """
    overrides: dict[str, datetime | None] = {}
    for name in StageTimestamps.field_names():
        if name not in supplied:
            continue
        overrides[name] = parse_timestamp(supplied[name], fallback=getattr(current, name))
    return replace(current, **overrides) if overrides else current


def parse_timestamp(value: Any, *, fallback: datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return _as_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            logger.info("pipeline.input.malformed_timestamp", extra={"value": value[:64]})
            return fallback
    return fallback


def parse_date(value: Any, *, fallback: date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            logger.info("pipeline.input.malformed_date", extra={"value": value[:64]})
            return fallback
    return fallback


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
