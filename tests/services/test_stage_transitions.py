from datetime import date, datetime, timezone

import pytest

from dealflow.models.deal import DealStage
from dealflow.services.pipeline.stages import (
    STAGE_TIMESTAMP_FIELDS,
    StageTimestamps,
    apply_transition,
    parse_date,
    parse_timestamp,
    resolve_timestamps,
)

NOW = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
EARLIER = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("stage, field", list(STAGE_TIMESTAMP_FIELDS.items()))
def test_entering_stamped_stage_sets_timestamp(stage, field):
    result = apply_transition(DealStage.SOURCING, stage, StageTimestamps(), NOW)
    assert getattr(result, field) == NOW
    others = {name for name in StageTimestamps.field_names() if name != field}
    assert all(getattr(result, name) is None for name in others)


def test_existing_timestamp_is_never_replaced():
    current = StageTimestamps(partner_review_started_at=EARLIER)
    result = apply_transition(DealStage.OFFER, DealStage.PARTNER_REVIEW, current, NOW)
    assert result.partner_review_started_at == EARLIER


def test_unchanged_stage_has_no_side_effects():
    result = apply_transition(
        DealStage.PARTNER_REVIEW, DealStage.PARTNER_REVIEW, StageTimestamps(), NOW
    )
    assert result == StageTimestamps()


@pytest.mark.parametrize(
    "stage",
    [
        DealStage.SOURCING_REACHED_OUT,
        DealStage.SOURCING_MEETING_DONE_DECIDING,
        DealStage.OFFER,
        DealStage.SIGNED,
        DealStage.CLOSED_LOST_PASSED,
        DealStage.CLOSED_LOST_REJECTED,
    ],
)
def test_other_stage_changes_are_inert(stage):
    assert apply_transition(DealStage.SOURCING, stage, StageTimestamps(), NOW) == StageTimestamps()


def test_new_deal_is_treated_as_a_stage_change():
    result = apply_transition(None, DealStage.SIGNED_AND_WIRED, StageTimestamps(), NOW)
    assert result.close_date == NOW


def test_any_stage_may_be_written_directly():
    result = apply_transition(
        DealStage.SIGNED_AND_WIRED,
        DealStage.SOURCING_MEETING_BOOKED,
        StageTimestamps(close_date=EARLIER),
        NOW,
    )
    assert result.sourcing_meeting_booked_at == NOW
    assert result.close_date == EARLIER


def test_resolve_timestamps_overlays_supplied_values():
    current = StageTimestamps(close_date=EARLIER)
    resolved = resolve_timestamps(
        current, {"partner_review_started_at": "2024-02-01T10:00:00+00:00"}
    )
    assert resolved.partner_review_started_at == datetime(2024, 2, 1, 10, tzinfo=timezone.utc)
    assert resolved.close_date == EARLIER


def test_resolve_timestamps_keeps_stored_value_for_malformed_input():
    current = StageTimestamps(close_date=EARLIER)
    resolved = resolve_timestamps(current, {"close_date": "last tuesday"})
    assert resolved.close_date == EARLIER


def test_resolve_timestamps_explicit_null_clears():
    current = StageTimestamps(close_date=EARLIER)
    assert resolve_timestamps(current, {"close_date": None}).close_date is None


def test_parse_timestamp_assumes_utc_for_naive_values():
    parsed = parse_timestamp("2024-04-01T09:15:00", fallback=None)
    assert parsed == datetime(2024, 4, 1, 9, 15, tzinfo=timezone.utc)


def test_parse_timestamp_normalizes_offsets_to_utc():
    parsed = parse_timestamp("2024-04-01T09:15:00+02:00", fallback=None)
    assert parsed == datetime(2024, 4, 1, 7, 15, tzinfo=timezone.utc)


def test_parse_date_accepts_timestamps_and_falls_back():
    assert parse_date("2024-06-30T18:00:00", fallback=None) == date(2024, 6, 30)
    assert parse_date("2024-06-30", fallback=None) == date(2024, 6, 30)
    assert parse_date("soon", fallback=date(2024, 1, 1)) == date(2024, 1, 1)
    assert parse_date(None, fallback=date(2024, 1, 1)) is None
