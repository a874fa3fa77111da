"""Introduction-request derivation rules.

A vote becomes an introduction candidate when its live field values signal
that the LP wants to meet the founders, or when an operator has already
created a request for it. Status transitions are pure functions over the
existing request (or None when no row exists yet).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Final
from uuid import UUID

from dealflow.models.deal import Deal, Founder
from dealflow.models.introduction import (
    FounderContact,
    IntroductionCandidate,
    IntroductionRequest,
    IntroductionStatus,
)
from dealflow.models.limited_partner import LimitedPartner
from dealflow.models.vote import (
    BuyingInterestResponse,
    ConvictionLevel,
    PilotCustomerResponse,
    Vote,
)

QUALIFYING_PILOT_RESPONSES: Final[frozenset[PilotCustomerResponse]] = frozenset(
    {
        PilotCustomerResponse.HELL_YES,
        PilotCustomerResponse.VERY_INTERESTED,
        PilotCustomerResponse.INTERESTED_WITH_CONDITIONS,
    }
)
QUALIFYING_BUYING_RESPONSES: Final[frozenset[BuyingInterestResponse]] = frozenset(
    {
        BuyingInterestResponse.ABSOLUTELY,
        BuyingInterestResponse.VERY_LIKELY,
        BuyingInterestResponse.PROBABLY,
    }
)


def qualifies(vote: Vote) -> bool:
    """Return True when the vote's own signals warrant an introduction."""
    if vote.pilot_customer_interest and vote.pilot_customer_response in QUALIFYING_PILOT_RESPONSES:
        return True
    if vote.would_buy and vote.buying_interest_response in QUALIFYING_BUYING_RESPONSES:
        return True
    return vote.conviction_level is not None and vote.conviction_level >= ConvictionLevel.STRONG_YES


def is_candidate(vote: Vote, request: IntroductionRequest | None) -> bool:
    # An existing request only ever widens eligibility.
    return request is not None or qualifies(vote)


def _status_tier(status: IntroductionStatus | None) -> int:
    if status is None or status == IntroductionStatus.PENDING:
        return 0
    if status == IntroductionStatus.SENT:
        return 1
    return 2


def order_candidates(candidates: Iterable[IntroductionCandidate]) -> list[IntroductionCandidate]:
    """Unactioned first, then sent, then the rest; newest vote first within a tier."""
    return sorted(
        candidates,
        key=lambda entry: (_status_tier(entry.intro_status), -entry.created_at.timestamp()),
    )


def build_candidate(
    vote: Vote,
    request: IntroductionRequest | None,
    partner: LimitedPartner | None,
    deal: Deal | None,
    founders: Sequence[Founder] = (),
) -> IntroductionCandidate:
    return IntroductionCandidate(
        vote_id=vote.id,
        deal_id=vote.deal_id,
        lp_id=vote.lp_id,
        conviction_level=vote.conviction_level,
        comments=vote.comments,
        pilot_customer_interest=vote.pilot_customer_interest,
        pilot_customer_response=vote.pilot_customer_response,
        pilot_customer_feedback=vote.pilot_customer_feedback,
        would_buy=vote.would_buy,
        buying_interest_response=vote.buying_interest_response,
        buying_interest_feedback=vote.buying_interest_feedback,
        price_feedback=vote.price_feedback,
        additional_notes=vote.additional_notes,
        pain_point_level=vote.pain_point_level,
        solution_feedback=vote.solution_feedback,
        created_at=vote.created_at,
        lp_name=partner.name if partner else None,
        lp_email=partner.email if partner else None,
        lp_company=partner.company if partner else None,
        lp_title=partner.title if partner else None,
        lp_avatar_url=partner.avatar_url if partner else None,
        company_name=deal.company_name if deal else None,
        company_description=deal.description if deal else None,
        company_url=deal.company_url if deal else None,
        pitch_deck_url=deal.pitch_deck_url if deal else None,
        intro_status=request.status if request else None,
        intro_sent_at=request.sent_at if request else None,
        intro_message=request.intro_message if request else None,
        founders=[
            FounderContact(
                id=founder.id,
                name=founder.name,
                email=founder.email,
                linkedin_url=founder.linkedin_url,
                bio=founder.bio,
            )
            for founder in founders
        ],
    )


def open_manual_request(
    existing: IntroductionRequest | None,
    *,
    vote_id: UUID,
    message: str | None,
    now: datetime,
) -> IntroductionRequest:
    """Create a pending request, or refresh the message of one still pending.

    Settled requests are returned unchanged so they never return to pending.
    """
    if existing is None:
        return IntroductionRequest(
            vote_id=vote_id,
            status=IntroductionStatus.PENDING,
            intro_message=message,
            created_at=now,
            updated_at=now,
        )
    if existing.status.is_settled:
        return existing
    return existing.model_copy(update={"intro_message": message, "updated_at": now})


def mark_sent(
    existing: IntroductionRequest | None,
    *,
    vote_id: UUID,
    message: str | None,
    now: datetime,
) -> IntroductionRequest:
    """Move to sent from any state; re-stamps sent_at and overwrites the message."""
    if existing is None:
        return IntroductionRequest(
            vote_id=vote_id,
            status=IntroductionStatus.SENT,
            intro_message=message,
            sent_at=now,
            created_at=now,
            updated_at=now,
        )
    return existing.model_copy(
        update={
            "status": IntroductionStatus.SENT,
            "sent_at": now,
            "intro_message": message,
            "updated_at": now,
        }
    )


def mark_declined(
    existing: IntroductionRequest | None,
    *,
    vote_id: UUID,
    now: datetime,
) -> IntroductionRequest:
    """Move to declined from any state; re-stamps declined_at."""
    if existing is None:
        return IntroductionRequest(
            vote_id=vote_id,
            status=IntroductionStatus.DECLINED,
            declined_at=now,
            created_at=now,
            updated_at=now,
        )
    return existing.model_copy(
        update={"status": IntroductionStatus.DECLINED, "declined_at": now, "updated_at": now}
    )
