"""Introduction requests derived from LP vote signals."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from dealflow.models.vote import (
    BuyingInterestResponse,
    ConvictionLevel,
    PainPointResponse,
    PilotCustomerResponse,
)


class IntroductionStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DECLINED = "declined"

    @property
    def is_settled(self) -> bool:
        return self is not IntroductionStatus.PENDING


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntroductionRequest(BaseModel):
    """At most one request exists per vote."""

    id: UUID = Field(default_factory=uuid4)
    vote_id: UUID
    status: IntroductionStatus = IntroductionStatus.PENDING
    intro_message: str | None = None
    sent_at: datetime | None = None
    declined_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class FounderContact(BaseModel):
    id: UUID
    name: str
    email: str | None = None
    linkedin_url: str | None = None
    bio: str | None = None


class IntroductionCandidate(BaseModel):
    """A vote eligible for an introduction, joined with LP, deal and request state."""

    vote_id: UUID
    deal_id: UUID
    lp_id: UUID
    conviction_level: ConvictionLevel | None = None
    comments: str | None = None
    pilot_customer_interest: bool | None = None
    pilot_customer_response: PilotCustomerResponse | None = None
    pilot_customer_feedback: str | None = None
    would_buy: bool | None = None
    buying_interest_response: BuyingInterestResponse | None = None
    buying_interest_feedback: str | None = None
    price_feedback: str | None = None
    additional_notes: str | None = None
    pain_point_level: PainPointResponse | None = None
    solution_feedback: str | None = None
    created_at: datetime
    lp_name: str | None = None
    lp_email: str | None = None
    lp_company: str | None = None
    lp_title: str | None = None
    lp_avatar_url: str | None = None
    company_name: str | None = None
    company_description: str | None = None
    company_url: str | None = None
    pitch_deck_url: str | None = None
    intro_status: IntroductionStatus | None = None
    intro_sent_at: datetime | None = None
    intro_message: str | None = None
    founders: list[FounderContact] = Field(default_factory=list)


class ManualIntroductionRequest(BaseModel):
    lp_id: UUID | None = None
    deal_id: UUID | None = None
    message: str | None = None


class SendIntroductionRequest(BaseModel):
    message: str | None = None
    lp_email: str | None = None
    founder_emails: list[str] = Field(default_factory=list)

    def recipients(self) -> list[str]:
        ordered: list[str] = []
        for address in [self.lp_email, *self.founder_emails]:
            if address and address.strip() and address.strip() not in ordered:
                ordered.append(address.strip())
        return ordered


class IntroductionActionResult(BaseModel):
    success: bool = True
    message: str
    vote_id: UUID
    status: IntroductionStatus
