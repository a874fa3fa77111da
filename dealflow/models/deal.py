"""Domain models for deals moving through the evaluation pipeline."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Final
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from dealflow.models.vote import Vote, VoteSummary


class DealStage(str, Enum):
    """Pipeline position of a deal."""

    SOURCING = "sourcing"
    SOURCING_REACHED_OUT = "sourcing_reached_out"
    SOURCING_MEETING_BOOKED = "sourcing_meeting_booked"
    SOURCING_MEETING_DONE_DECIDING = "sourcing_meeting_done_deciding"
    PARTNER_REVIEW = "partner_review"
    OFFER = "offer"
    SIGNED = "signed"
    SIGNED_AND_WIRED = "signed_and_wired"
    CLOSED_LOST_PASSED = "closed_lost_passed"
    CLOSED_LOST_REJECTED = "closed_lost_rejected"


class DealStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


# Text fields that may never be blanked by an update.
REQUIRED_TEXT_FIELDS: Final[tuple[str, ...]] = ("company_name", "industry", "funding_round")

OPTIONAL_TEXT_FIELDS: Final[tuple[str, ...]] = (
    "company_url",
    "company_description_short",
    "description",
    "partner_excitement_note",
    "why_good_fit",
    "pitch_deck_url",
    "website_url",
    "created_by",
    "founders_location",
    "company_base_location",
    "demo_url",
    "working_duration",
    "traction_progress",
    "user_traction",
    "founder_motivation",
    "competition_differentiation",
    "safe_or_equity",
    "lead_investor",
    "contract_link",
)

OPTIONAL_NUMBER_FIELDS: Final[tuple[str, ...]] = (
    "valuation",
    "revenue_amount",
    "raising_amount",
    "confirmed_amount",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FounderInput(BaseModel):
    """Founder details supplied alongside a deal create/update."""

    name: str = ""
    bio: str | None = None
    linkedin_url: str | None = None
    email: str | None = None
    avatar_url: str | None = None

    @property
    def has_name(self) -> bool:
        return bool(self.name and self.name.strip())


class Founder(FounderInput):
    id: UUID = Field(default_factory=uuid4)
    deal_id: UUID
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class Deal(BaseModel):
    """Persisted deal row."""

    id: UUID = Field(default_factory=uuid4)
    company_name: str
    company_url: str | None = None
    company_description_short: str | None = None
    industry: str = ""
    stage: DealStage = DealStage.SOURCING
    deal_size: float | None = None
    valuation: float | None = None
    description: str | None = None
    partner_excitement_note: str | None = None
    why_good_fit: str | None = None
    pitch_deck_url: str | None = None
    website_url: str | None = None
    funding_round: str = ""
    status: DealStatus = DealStatus.ACTIVE
    survey_deadline: date | None = None
    created_by: str | None = None
    founders_location: str | None = None
    company_base_location: str | None = None
    demo_url: str | None = None
    working_duration: str | None = None
    has_revenue: bool = False
    revenue_amount: float | None = None
    traction_progress: str | None = None
    user_traction: str | None = None
    founder_motivation: str | None = None
    competition_differentiation: str | None = None
    raising_amount: float | None = None
    safe_or_equity: str | None = None
    confirmed_amount: float | None = 0
    lead_investor: str | None = None
    co_investors: list[str] | None = None
    contract_link: str | None = None
    sourcing_meeting_booked_at: datetime | None = None
    partner_review_started_at: datetime | None = None
    close_date: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class DealCreate(BaseModel):
    """Payload for creating a deal.

    Stage timestamps accept raw strings so unparseable client input can be
    tolerated instead of rejected.
    """

    company_name: str
    company_url: str | None = None
    company_description_short: str | None = None
    industry: str = ""
    stage: DealStage = DealStage.SOURCING
    deal_size: float | None = None
    valuation: float | None = None
    description: str | None = None
    partner_excitement_note: str | None = None
    why_good_fit: str | None = None
    pitch_deck_url: str | None = None
    website_url: str | None = None
    funding_round: str = ""
    status: DealStatus = DealStatus.ACTIVE
    survey_deadline: date | None = None
    created_by: str | None = None
    founders_location: str | None = None
    company_base_location: str | None = None
    demo_url: str | None = None
    working_duration: str | None = None
    has_revenue: bool = False
    revenue_amount: float | None = None
    traction_progress: str | None = None
    user_traction: str | None = None
    founder_motivation: str | None = None
    competition_differentiation: str | None = None
    raising_amount: float | None = None
    safe_or_equity: str | None = None
    confirmed_amount: float | None = 0
    lead_investor: str | None = None
    co_investors: list[str] | None = None
    contract_link: str | None = None
    sourcing_meeting_booked_at: datetime | str | None = None
    partner_review_started_at: datetime | str | None = None
    close_date: datetime | str | None = None
    founders: list[FounderInput] = Field(default_factory=list)


class DealUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    company_name: str | None = None
    company_url: str | None = None
    company_description_short: str | None = None
    industry: str | None = None
    stage: DealStage | None = None
    deal_size: float | None = None
    valuation: float | None = None
    description: str | None = None
    partner_excitement_note: str | None = None
    why_good_fit: str | None = None
    pitch_deck_url: str | None = None
    website_url: str | None = None
    funding_round: str | None = None
    status: DealStatus | None = None
    survey_deadline: date | str | None = None
    created_by: str | None = None
    founders_location: str | None = None
    company_base_location: str | None = None
    demo_url: str | None = None
    working_duration: str | None = None
    has_revenue: bool | None = None
    revenue_amount: float | None = None
    traction_progress: str | None = None
    user_traction: str | None = None
    founder_motivation: str | None = None
    competition_differentiation: str | None = None
    raising_amount: float | None = None
    safe_or_equity: str | None = None
    confirmed_amount: float | None = None
    lead_investor: str | None = None
    co_investors: list[str] | None = None
    contract_link: str | None = None
    sourcing_meeting_booked_at: datetime | str | None = None
    partner_review_started_at: datetime | str | None = None
    close_date: datetime | str | None = None
    founders: list[FounderInput] | None = None


class DealView(Deal):
    """Deal joined with optional vote and founder data for read endpoints."""

    votes: list[Vote] | None = None
    vote_summary: VoteSummary | None = None
    founders: list[Founder] | None = None
