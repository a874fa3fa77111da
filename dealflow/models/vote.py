"""Domain models for LP votes and their per-deal tallies."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Final
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ConvictionLevel(IntEnum):
    """Ordinal investment-enthusiasm rating an LP gives a deal."""

    NO = 1
    FOLLOWING_THE_PACK = 2
    STRONG_YES = 3
    STRONG_YES_PLUS = 4  # strong yes and wants to increase allocation


class ReviewStatus(str, Enum):
    TO_REVIEW = "to_review"


class PainPointResponse(str, Enum):
    NOT_AT_ALL = "not_at_all"
    RARELY = "rarely"
    SOMETIMES = "sometimes"
    ANNOYING = "annoying"
    REAL_PROBLEM = "real_problem"
    MAJOR_PAIN = "major_pain"
    CRITICAL = "critical"


class PilotCustomerResponse(str, Enum):
    NOT_INTERESTED = "not_interested"
    NOT_RIGHT_NOW = "not_right_now"
    NEED_MORE_INFO = "need_more_info"
    CAUTIOUSLY_INTERESTED = "cautiously_interested"
    INTERESTED_WITH_CONDITIONS = "interested_with_conditions"
    VERY_INTERESTED = "very_interested"
    HELL_YES = "hell_yes"


class BuyingInterestResponse(str, Enum):
    DEFINITELY_NOT = "definitely_not"
    UNLIKELY = "unlikely"
    NOT_SURE = "not_sure"
    MAYBE = "maybe"
    PROBABLY = "probably"
    VERY_LIKELY = "very_likely"
    ABSOLUTELY = "absolutely"


# Every column a vote submission may set; identity and bookkeeping columns are excluded.
VOTE_FIELDS: Final[tuple[str, ...]] = (
    "conviction_level",
    "review_status",
    "strong_no",
    "comments",
    "has_pain_point",
    "pain_point_level",
    "solution_feedback",
    "pilot_customer_interest",
    "pilot_customer_response",
    "pilot_customer_feedback",
    "would_buy",
    "buying_interest_response",
    "buying_interest_feedback",
    "price_feedback",
    "additional_notes",
    "founder_specific_notes",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VoteFields(BaseModel):
    conviction_level: ConvictionLevel | None = None
    review_status: ReviewStatus | None = None
    strong_no: bool = False
    comments: str | None = None
    has_pain_point: bool | None = None
    pain_point_level: PainPointResponse | None = None
    solution_feedback: str | None = None
    pilot_customer_interest: bool | None = None
    pilot_customer_response: PilotCustomerResponse | None = None
    pilot_customer_feedback: str | None = None
    would_buy: bool | None = None
    buying_interest_response: BuyingInterestResponse | None = None
    buying_interest_feedback: str | None = None
    price_feedback: str | None = None
    additional_notes: str | None = None
    founder_specific_notes: str | None = None


class Vote(VoteFields):
    """Persisted vote; at most one exists per (deal, LP) pair."""

    id: UUID = Field(default_factory=uuid4)
    deal_id: UUID
    lp_id: UUID
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class VoteSubmission(VoteFields):
    """Upsert payload keyed on (deal_id, lp_id).

    Only fields present in the request body overwrite stored values.
    """

    deal_id: UUID | None = None
    lp_id: UUID | None = None

    def supplied_fields(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in VOTE_FIELDS if name in self.model_fields_set}


class VoteUpdate(BaseModel):
    """Update-by-id payload; null or absent fields keep their stored value."""

    conviction_level: ConvictionLevel | None = None
    review_status: ReviewStatus | None = None
    strong_no: bool | None = None
    comments: str | None = None
    has_pain_point: bool | None = None
    pain_point_level: PainPointResponse | None = None
    solution_feedback: str | None = None
    pilot_customer_interest: bool | None = None
    pilot_customer_response: PilotCustomerResponse | None = None
    pilot_customer_feedback: str | None = None
    would_buy: bool | None = None
    buying_interest_response: BuyingInterestResponse | None = None
    buying_interest_feedback: str | None = None
    price_feedback: str | None = None
    additional_notes: str | None = None
    founder_specific_notes: str | None = None

    def supplied_fields(self) -> dict[str, object]:
        return {name: value for name, value in self.model_dump().items() if value is not None}


class VoteSummary(BaseModel):
    """Per-deal tallies derived from the vote set on every read."""

    total_votes: int = 0
    strong_yes_plus_votes: int = 0
    strong_yes_votes: int = 0
    following_pack_votes: int = 0
    no_votes: int = 0
    strong_no_votes: int = 0
    to_review_votes: int = 0
    net_score: int = 0


class VoteWithContext(Vote):
    lp_name: str | None = None
    lp_email: str | None = None
    lp_company: str | None = None
    lp_title: str | None = None
    deal_company_name: str | None = None


class VoteDeleted(BaseModel):
    message: str = "Vote deleted successfully"
    deal_id: UUID
