"""Deal evaluation pipeline service used by the API routes."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import partial
from typing import Any
from uuid import UUID

from dealflow.config import settings
from dealflow.models.deal import (
    OPTIONAL_NUMBER_FIELDS,
    OPTIONAL_TEXT_FIELDS,
    REQUIRED_TEXT_FIELDS,
    Deal,
    DealCreate,
    DealStatus,
    DealUpdate,
    DealView,
    Founder,
    FounderInput,
)
from dealflow.models.introduction import (
    IntroductionActionResult,
    IntroductionCandidate,
    ManualIntroductionRequest,
    SendIntroductionRequest,
)
from dealflow.models.limited_partner import (
    LimitedPartner,
    LimitedPartnerCreate,
    LimitedPartnerUpdate,
)
from dealflow.models.vote import (
    ConvictionLevel,
    Vote,
    VoteDeleted,
    VoteSubmission,
    VoteUpdate,
    VoteWithContext,
)
from dealflow.observability.metrics import metrics
from dealflow.services.pipeline.aggregation import summarize_votes
from dealflow.services.pipeline.errors import (
    PipelineError,
    PipelineValidationError,
    RecordNotFoundError,
)
from dealflow.services.pipeline.introductions import (
    build_candidate,
    is_candidate,
    mark_declined,
    mark_sent,
    open_manual_request,
    order_candidates,
)
from dealflow.services.pipeline.mailer import IntroductionMailer, build_mailer
from dealflow.services.pipeline.repositories import (
    PipelineRepository,
    build_pipeline_repository,
)
from dealflow.services.pipeline.stages import (
    StageTimestamps,
    apply_transition,
    parse_date,
    parse_timestamp,
    resolve_timestamps,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DealPipelineService:
    """Coordinates deal edits, vote collection and introduction requests."""

    def __init__(
        self,
        *,
        repository: PipelineRepository | None = None,
        mailer: IntroductionMailer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository or build_pipeline_repository()
        self._mailer = mailer or build_mailer()
        self._clock = clock or _utcnow
        self._metrics_tags = {"repository": getattr(self._repository, "backend", "custom")}

    # Deals

    def get_deal(
        self,
        deal_id: UUID,
        *,
        include_votes: bool = False,
        include_founders: bool = False,
    ) -> DealView:
        deal = self._require_deal(deal_id)
        votes = self._repository.list_votes(deal_id) if include_votes else None
        founders = self._repository.list_founders(deal_id) if include_founders else None
        return _deal_view(deal, votes=votes, founders=founders)

    def list_deals(
        self,
        *,
        include_votes: bool = False,
        include_founders: bool = False,
    ) -> list[DealView]:
        """Active deals, newest first."""
        deals = self._repository.list_deals(status=DealStatus.ACTIVE)
        votes_by_deal: dict[UUID, list[Vote]] = defaultdict(list)
        founders_by_deal: dict[UUID, list[Founder]] = defaultdict(list)
        if include_votes:
            for vote in self._repository.list_votes():
                votes_by_deal[vote.deal_id].append(vote)
        if include_founders:
            for founder in self._repository.list_founders():
                founders_by_deal[founder.deal_id].append(founder)
        return [
            _deal_view(
                deal,
                votes=votes_by_deal[deal.id] if include_votes else None,
                founders=founders_by_deal[deal.id] if include_founders else None,
            )
            for deal in deals
        ]

    def create_deal(self, payload: DealCreate) -> DealView:
        with self._observe("create_deal"):
            company_name = payload.company_name.strip()
            if not company_name:
                raise PipelineValidationError(
                    "company_name must not be blank.", code="422_INVALID_FIELD"
                )
            now = self._clock()
            supplied = StageTimestamps(
                **{
                    name: parse_timestamp(getattr(payload, name), fallback=None)
                    for name in StageTimestamps.field_names()
                }
            )
            timestamps = apply_transition(None, payload.stage, supplied, now)
            data = payload.model_dump(exclude={"founders", *StageTimestamps.field_names()})
            data.update(_clean_optional_text(data))
            deal = Deal(
                **{**data, "company_name": company_name},
                **timestamps.as_dict(),
                created_at=now,
                updated_at=now,
            )
            founders = _founders_for(deal.id, payload.founders, now)
            persisted = self._repository.insert_deal(deal, founders)
            metrics.increment("pipeline.deal.created", tags=self._metrics_tags)
            logger.info(
                "pipeline.deal.created",
                extra={
                    "deal_id": str(persisted.id),
                    "stage": persisted.stage.value,
                    "founders": len(founders),
                },
            )
            return _deal_view(persisted, founders=founders)

    def update_deal(self, deal_id: UUID, payload: DealUpdate) -> DealView:
        """Apply a partial update; fields absent from the payload keep their stored value."""
        with self._observe("update_deal"):
            now = self._clock()
            supplied = {name: getattr(payload, name) for name in payload.model_fields_set}
            transition: dict[str, Any] = {}

            def _mutate(current: Deal) -> tuple[Deal, Sequence[Founder] | None]:
                changes = _resolve_deal_changes(current, supplied)
                requested_stage = changes.get("stage", current.stage)
                resolved = resolve_timestamps(StageTimestamps.from_source(current), supplied)
                stamped = apply_transition(current.stage, requested_stage, resolved, now)
                changes.update(stamped.as_dict())
                changes["updated_at"] = now
                transition.update(previous=current.stage, requested=requested_stage)
                founders = None
                if payload.founders is not None and any(f.has_name for f in payload.founders):
                    founders = _founders_for(current.id, payload.founders, now)
                return current.model_copy(update=changes), founders

            updated = self._repository.modify_deal(deal_id, _mutate)
            if transition["previous"] != transition["requested"]:
                metrics.increment(
                    "pipeline.deal.stage_transition",
                    tags={**self._metrics_tags, "stage": transition["requested"].value},
                )
                logger.info(
                    "pipeline.deal.stage_transition",
                    extra={
                        "deal_id": str(deal_id),
                        "previous_stage": transition["previous"].value,
                        "stage": transition["requested"].value,
                    },
                )
            logger.info(
                "pipeline.deal.updated",
                extra={"deal_id": str(deal_id), "fields": sorted(supplied)},
            )
            return _deal_view(updated)

    # Votes

    def submit_vote(self, submission: VoteSubmission) -> Vote:
        """Upsert the vote for (deal_id, lp_id), overwriting only supplied fields."""
        with self._observe("submit_vote"):
            if submission.deal_id is None or submission.lp_id is None:
                raise PipelineValidationError(
                    "deal_id and lp_id are required.", code="400_MISSING_IDENTIFIERS"
                )
            self._require_deal(submission.deal_id)
            self._require_partner(submission.lp_id)
            fields = submission.supplied_fields()
            vote = self._repository.upsert_vote(
                submission.deal_id, submission.lp_id, fields, now=self._clock()
            )
            metrics.increment("pipeline.vote.upserted", tags=self._metrics_tags)
            logger.info(
                "pipeline.vote.upserted",
                extra={
                    "vote_id": str(vote.id),
                    "deal_id": str(vote.deal_id),
                    "lp_id": str(vote.lp_id),
                    "fields": sorted(fields),
                },
            )
            return vote

    def update_vote(self, vote_id: UUID, payload: VoteUpdate) -> Vote:
        with self._observe("update_vote"):
            fields = payload.supplied_fields()
            vote = self._repository.update_vote(vote_id, fields, now=self._clock())
            if vote is None:
                raise RecordNotFoundError(f"Vote {vote_id} not found.", code="404_VOTE_NOT_FOUND")
            logger.info(
                "pipeline.vote.updated", extra={"vote_id": str(vote_id), "fields": sorted(fields)}
            )
            return vote

    def delete_vote(self, vote_id: UUID) -> VoteDeleted:
        with self._observe("delete_vote"):
            removed = self._repository.delete_vote(vote_id)
            if removed is None:
                raise RecordNotFoundError(f"Vote {vote_id} not found.", code="404_VOTE_NOT_FOUND")
            metrics.increment("pipeline.vote.deleted", tags=self._metrics_tags)
            logger.info(
                "pipeline.vote.deleted",
                extra={"vote_id": str(vote_id), "deal_id": str(removed.deal_id)},
            )
            return VoteDeleted(deal_id=removed.deal_id)

    def list_votes(self, deal_id: UUID | None = None) -> list[VoteWithContext]:
        votes = self._repository.list_votes(deal_id)
        partners = {partner.id: partner for partner in self._repository.list_limited_partners()}
        deals = {deal.id: deal for deal in self._repository.list_deals(status=None)}
        results: list[VoteWithContext] = []
        for vote in votes:
            partner = partners.get(vote.lp_id)
            deal = deals.get(vote.deal_id)
            results.append(
                VoteWithContext(
                    **vote.model_dump(),
                    lp_name=partner.name if partner else None,
                    lp_email=partner.email if partner else None,
                    lp_company=partner.company if partner else None,
                    lp_title=partner.title if partner else None,
                    deal_company_name=deal.company_name if deal else None,
                )
            )
        return results

    # Introduction requests

    def list_introduction_candidates(self) -> list[IntroductionCandidate]:
        """Votes that qualify now or already carry a request, unactioned first."""
        requests = {request.vote_id: request for request in self._repository.list_introductions()}
        partners = {partner.id: partner for partner in self._repository.list_limited_partners()}
        deals = {deal.id: deal for deal in self._repository.list_deals(status=None)}
        founders: dict[UUID, list[Founder]] = defaultdict(list)
        for founder in self._repository.list_founders():
            founders[founder.deal_id].append(founder)

        candidates = [
            build_candidate(
                vote,
                requests.get(vote.id),
                partners.get(vote.lp_id),
                deals.get(vote.deal_id),
                founders.get(vote.deal_id, []),
            )
            for vote in self._repository.list_votes()
            if is_candidate(vote, requests.get(vote.id))
        ]
        metrics.gauge("pipeline.introduction.candidates", len(candidates), tags=self._metrics_tags)
        return order_candidates(candidates)

    def send_introduction(
        self, vote_id: UUID, payload: SendIntroductionRequest | None = None
    ) -> IntroductionActionResult:
        """Mark the vote's request sent, then hand the message to the mailer."""
        payload = payload or SendIntroductionRequest()
        with self._observe("send_introduction"):
            vote = self._require_vote(vote_id)
            request = self._repository.apply_introduction(
                vote_id,
                partial(mark_sent, vote_id=vote_id, message=payload.message, now=self._clock()),
            )
            metrics.increment("pipeline.introduction.sent", tags=self._metrics_tags)
            logger.info(
                "pipeline.introduction.sent",
                extra={"vote_id": str(vote_id), "request_id": str(request.id)},
            )
            recipients = payload.recipients()
            if recipients:
                self._mailer.deliver(
                    vote_id=vote_id,
                    recipients=recipients,
                    subject=self._introduction_subject(vote),
                    body=payload.message or "",
                )
            return IntroductionActionResult(
                message="Introduction sent", vote_id=vote_id, status=request.status
            )

    def decline_introduction(self, vote_id: UUID) -> IntroductionActionResult:
        with self._observe("decline_introduction"):
            self._require_vote(vote_id)
            request = self._repository.apply_introduction(
                vote_id, partial(mark_declined, vote_id=vote_id, now=self._clock())
            )
            metrics.increment("pipeline.introduction.declined", tags=self._metrics_tags)
            logger.info(
                "pipeline.introduction.declined",
                extra={"vote_id": str(vote_id), "request_id": str(request.id)},
            )
            return IntroductionActionResult(
                message="Introduction request declined", vote_id=vote_id, status=request.status
            )

    def create_manual_introduction(
        self, payload: ManualIntroductionRequest
    ) -> IntroductionActionResult:
        """Open a pending request for (lp_id, deal_id), creating a placeholder vote if needed."""
        with self._observe("create_manual_introduction"):
            if payload.lp_id is None or payload.deal_id is None:
                raise PipelineValidationError(
                    "lp_id and deal_id are required.", code="400_MISSING_IDENTIFIERS"
                )
            self._require_deal(payload.deal_id)
            self._require_partner(payload.lp_id)
            now = self._clock()
            vote = self._repository.ensure_vote(
                payload.deal_id,
                payload.lp_id,
                {
                    "conviction_level": ConvictionLevel(settings.manual_introduction_conviction),
                    "comments": settings.manual_introduction_comment,
                },
                now=now,
            )
            request = self._repository.apply_introduction(
                vote.id,
                partial(open_manual_request, vote_id=vote.id, message=payload.message, now=now),
            )
            metrics.increment("pipeline.introduction.manual_created", tags=self._metrics_tags)
            logger.info(
                "pipeline.introduction.manual_created",
                extra={
                    "vote_id": str(vote.id),
                    "deal_id": str(payload.deal_id),
                    "lp_id": str(payload.lp_id),
                    "status": request.status.value,
                },
            )
            return IntroductionActionResult(
                message="Introduction request created", vote_id=vote.id, status=request.status
            )

    # Limited partners

    def create_limited_partner(self, payload: LimitedPartnerCreate) -> LimitedPartner:
        now = self._clock()
        partner = LimitedPartner(**payload.model_dump(), created_at=now, updated_at=now)
        persisted = self._repository.insert_limited_partner(partner)
        logger.info("pipeline.lp.created", extra={"lp_id": str(persisted.id)})
        return persisted

    def get_limited_partner(self, lp_id: UUID) -> LimitedPartner:
        return self._require_partner(lp_id)

    def list_limited_partners(self) -> list[LimitedPartner]:
        return self._repository.list_limited_partners()

    def update_limited_partner(
        self, lp_id: UUID, payload: LimitedPartnerUpdate
    ) -> LimitedPartner:
        with self._observe("update_limited_partner"):
            changes = payload.changes()
            updated = self._repository.update_limited_partner(lp_id, changes, now=self._clock())
            if updated is None:
                raise RecordNotFoundError(f"LP {lp_id} not found.", code="404_LP_NOT_FOUND")
            logger.info(
                "pipeline.lp.updated", extra={"lp_id": str(lp_id), "fields": sorted(changes)}
            )
            return updated

    def delete_limited_partner(self, lp_id: UUID) -> None:
        """Delete the LP together with its votes and their introduction requests."""
        with self._observe("delete_limited_partner"):
            if not self._repository.delete_limited_partner(lp_id):
                raise RecordNotFoundError(f"LP {lp_id} not found.", code="404_LP_NOT_FOUND")
            metrics.increment("pipeline.lp.deleted", tags=self._metrics_tags)

    # Helpers

    def _require_deal(self, deal_id: UUID) -> Deal:
        deal = self._repository.get_deal(deal_id)
        if deal is None:
            raise RecordNotFoundError(f"Deal {deal_id} not found.", code="404_DEAL_NOT_FOUND")
        return deal

    def _require_partner(self, lp_id: UUID) -> LimitedPartner:
        partner = self._repository.get_limited_partner(lp_id)
        if partner is None:
            raise RecordNotFoundError(f"LP {lp_id} not found.", code="404_LP_NOT_FOUND")
        return partner

    def _require_vote(self, vote_id: UUID) -> Vote:
        vote = self._repository.get_vote(vote_id)
        if vote is None:
            raise RecordNotFoundError(f"Vote {vote_id} not found.", code="404_VOTE_NOT_FOUND")
        return vote

    def _introduction_subject(self, vote: Vote) -> str:
        partner = self._repository.get_limited_partner(vote.lp_id)
        deal = self._repository.get_deal(vote.deal_id)
        return settings.introduction_subject_template.format(
            lp_name=partner.name if partner else "LP",
            company_name=deal.company_name if deal else "founders",
        )

    @contextmanager
    def _observe(self, operation: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except PipelineError as exc:
            metrics.increment(
                "pipeline.errors",
                tags={**self._metrics_tags, "operation": operation, "code": exc.code},
            )
            logger.warning(
                "pipeline.operation.failed",
                extra={"operation": operation, "code": exc.code, "error": str(exc)},
            )
            raise
        finally:
            metrics.timing(
                "pipeline.latency_ms",
                (time.perf_counter() - start) * 1000,
                tags={**self._metrics_tags, "operation": operation},
            )


def _deal_view(
    deal: Deal,
    *,
    votes: list[Vote] | None = None,
    founders: Sequence[Founder] | None = None,
) -> DealView:
    return DealView(
        **deal.model_dump(),
        votes=votes,
        vote_summary=summarize_votes(votes) if votes is not None else None,
        founders=list(founders) if founders is not None else None,
    )


def _founders_for(
    deal_id: UUID, founders: Sequence[FounderInput], now: datetime
) -> list[Founder]:
    return [
        Founder(
            **{**founder.model_dump(), "name": founder.name.strip()},
            deal_id=deal_id,
            created_at=now,
            updated_at=now,
        )
        for founder in founders
        if founder.has_name
    ]


def _clean_optional_text(data: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for name in OPTIONAL_TEXT_FIELDS:
        value = data.get(name)
        if isinstance(value, str):
            cleaned[name] = value.strip() or None
    return cleaned


def _resolve_deal_changes(current: Deal, supplied: dict[str, Any]) -> dict[str, Any]:
    """Map supplied update fields onto stored values using the partial-update rules."""
    changes: dict[str, Any] = {}
    for name in REQUIRED_TEXT_FIELDS:
        value = supplied.get(name)
        if isinstance(value, str) and value.strip():
            changes[name] = value.strip()
    for name in ("stage", "status", "deal_size"):
        if supplied.get(name) is not None:
            changes[name] = supplied[name]
    for name in OPTIONAL_NUMBER_FIELDS:
        if name in supplied:
            changes[name] = supplied[name]
    changes.update(_clean_optional_text(supplied))
    for name in OPTIONAL_TEXT_FIELDS:
        if name in supplied and supplied[name] is None:
            changes[name] = None
    if "has_revenue" in supplied:
        changes["has_revenue"] = bool(supplied["has_revenue"])
    if isinstance(supplied.get("co_investors"), list):
        changes["co_investors"] = supplied["co_investors"]
    if "survey_deadline" in supplied:
        changes["survey_deadline"] = parse_date(
            supplied["survey_deadline"], fallback=current.survey_deadline
        )
    return changes


_SERVICE_INSTANCE: DealPipelineService | None = None


def get_pipeline_service() -> DealPipelineService:
    """Singleton accessor used by API routes."""
    global _SERVICE_INSTANCE  # noqa: PLW0603
    if _SERVICE_INSTANCE is None:
        _SERVICE_INSTANCE = DealPipelineService()
    return _SERVICE_INSTANCE
