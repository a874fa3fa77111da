"""SQLModel mappings for the pipeline tables."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID, uuid4

import sqlalchemy as sa
from pydantic import BaseModel
from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from dealflow.models.deal import Deal, Founder
from dealflow.models.introduction import IntroductionRequest
from dealflow.models.limited_partner import LimitedPartner
from dealflow.models.vote import Vote

_M = TypeVar("_M", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


def _text(length: int | None = None, *, nullable: bool = True) -> Any:
    column_type = String(length=length) if length else Text()
    return Field(default=None, sa_column=Column(column_type, nullable=nullable))


def _timestamp(*, nullable: bool = True) -> Any:
    return Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=nullable))


def _created_at() -> Any:
    return Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )


def _updated_at() -> Any:
    return Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
            onupdate=UtcNow(),
        ),
    )


def to_column_value(value: Any) -> Any:
    """Unwrap enums so every driver binds plain str/int values."""
    if isinstance(value, Enum):
        return value.value
    return value


def _as_utc(value: Any) -> Any:
    # SQLite drops tzinfo on round-trip; stored values are always UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def hydrate(model_cls: type[_M], record: SQLModel) -> _M:
    """Build a domain model from a table row, restoring UTC tzinfo."""
    payload = {
        name: _as_utc(getattr(record, name))
        for name in model_cls.model_fields
        if hasattr(record, name)
    }
    return model_cls.model_validate(payload)


def dehydrate(model: BaseModel, *, exclude: set[str] | None = None) -> dict[str, Any]:
    return {
        name: to_column_value(value)
        for name, value in model.model_dump(exclude=exclude).items()
    }


class DealRecord(SQLModel, table=True):
    """ORM model for deal rows."""

    __tablename__ = "deals"
    __table_args__ = (
        sa.Index("ix_deals_status_created", "status", "created_at"),
        sa.Index("ix_deals_stage", "stage"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    company_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    company_url: str | None = _text(1024)
    company_description_short: str | None = _text(255)
    industry: str = Field(default="", sa_column=Column(String(length=255), nullable=False))
    stage: str = Field(
        default="sourcing",
        sa_column=Column(String(length=64), nullable=False, server_default="sourcing"),
    )
    deal_size: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    valuation: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    description: str | None = _text()
    partner_excitement_note: str | None = _text()
    why_good_fit: str | None = _text()
    pitch_deck_url: str | None = _text(1024)
    website_url: str | None = _text(1024)
    funding_round: str = Field(default="", sa_column=Column(String(length=64), nullable=False))
    status: str = Field(
        default="active",
        sa_column=Column(String(length=32), nullable=False, server_default="active"),
    )
    survey_deadline: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    created_by: str | None = _text(255)
    founders_location: str | None = _text(255)
    company_base_location: str | None = _text(255)
    demo_url: str | None = _text(1024)
    working_duration: str | None = _text()
    has_revenue: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default=sa.false())
    )
    revenue_amount: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    traction_progress: str | None = _text()
    user_traction: str | None = _text()
    founder_motivation: str | None = _text()
    competition_differentiation: str | None = _text()
    raising_amount: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    safe_or_equity: str | None = _text(64)
    confirmed_amount: float | None = Field(default=0, sa_column=Column(Float, nullable=True))
    lead_investor: str | None = _text(255)
    co_investors: list[str] | None = Field(
        default=None, sa_column=Column(JSON_BACKING_TYPE, nullable=True)
    )
    contract_link: str | None = _text(1024)
    sourcing_meeting_booked_at: datetime | None = _timestamp()
    partner_review_started_at: datetime | None = _timestamp()
    close_date: datetime | None = _timestamp()
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()

    @classmethod
    def from_deal(cls, deal: Deal) -> DealRecord:
        return cls(**dehydrate(deal))

    def to_deal(self) -> Deal:
        return hydrate(Deal, self)


class FounderRecord(SQLModel, table=True):
    __tablename__ = "founders"
    __table_args__ = (sa.Index("ix_founders_deal_id", "deal_id"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    deal_id: UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), sa.ForeignKey("deals.id"), nullable=False)
    )
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    bio: str | None = _text()
    linkedin_url: str | None = _text(1024)
    email: str | None = _text(255)
    avatar_url: str | None = _text(1024)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()

    @classmethod
    def from_founder(cls, founder: Founder) -> FounderRecord:
        return cls(**dehydrate(founder))

    def to_founder(self) -> Founder:
        return hydrate(Founder, self)


class LimitedPartnerRecord(SQLModel, table=True):
    __tablename__ = "limited_partners"
    __table_args__ = (sa.Index("ix_limited_partners_email", "email"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    email: str = Field(sa_column=Column(String(length=255), nullable=False))
    company: str | None = _text(255)
    title: str | None = _text(255)
    phone: str | None = _text(64)
    linkedin_url: str | None = _text(1024)
    avatar_url: str | None = _text(1024)
    investment_amount: float = Field(default=0, sa_column=Column(Float, nullable=False))
    commitment_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    status: str = Field(default="active", sa_column=Column(String(length=32), nullable=False))
    partner_type: str = Field(
        default="limited_partner", sa_column=Column(String(length=32), nullable=False)
    )
    expertise_areas: list[str] = Field(
        default_factory=list, sa_column=Column(JSON_BACKING_TYPE, nullable=False)
    )
    notes: str | None = _text()
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()

    @classmethod
    def from_limited_partner(cls, partner: LimitedPartner) -> LimitedPartnerRecord:
        return cls(**dehydrate(partner))

    def to_limited_partner(self) -> LimitedPartner:
        return hydrate(LimitedPartner, self)


class VoteRecord(SQLModel, table=True):
    """One row per (deal, LP) pair, enforced by uq_votes_deal_lp."""

    __tablename__ = "votes"
    __table_args__ = (
        sa.UniqueConstraint("deal_id", "lp_id", name="uq_votes_deal_lp"),
        sa.Index("ix_votes_deal_id", "deal_id"),
        sa.Index("ix_votes_lp_id", "lp_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    deal_id: UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), sa.ForeignKey("deals.id"), nullable=False)
    )
    lp_id: UUID = Field(
        sa_column=Column(
            Uuid(as_uuid=True), sa.ForeignKey("limited_partners.id"), nullable=False
        )
    )
    conviction_level: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    review_status: str | None = _text(32)
    strong_no: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default=sa.false())
    )
    comments: str | None = _text()
    has_pain_point: bool | None = Field(default=None, sa_column=Column(Boolean, nullable=True))
    pain_point_level: str | None = _text(64)
    solution_feedback: str | None = _text()
    pilot_customer_interest: bool | None = Field(
        default=None, sa_column=Column(Boolean, nullable=True)
    )
    pilot_customer_response: str | None = _text(64)
    pilot_customer_feedback: str | None = _text()
    would_buy: bool | None = Field(default=None, sa_column=Column(Boolean, nullable=True))
    buying_interest_response: str | None = _text(64)
    buying_interest_feedback: str | None = _text()
    price_feedback: str | None = _text()
    additional_notes: str | None = _text()
    founder_specific_notes: str | None = _text()
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()

    @classmethod
    def from_vote(cls, vote: Vote) -> VoteRecord:
        return cls(**dehydrate(vote))

    def to_vote(self) -> Vote:
        return hydrate(Vote, self)


class IntroductionRequestRecord(SQLModel, table=True):
    """One row per vote, enforced by uq_introduction_requests_vote."""

    __tablename__ = "introduction_requests"
    __table_args__ = (
        sa.UniqueConstraint("vote_id", name="uq_introduction_requests_vote"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    vote_id: UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), sa.ForeignKey("votes.id"), nullable=False)
    )
    status: str = Field(
        default="pending",
        sa_column=Column(String(length=32), nullable=False, server_default="pending"),
    )
    intro_message: str | None = _text()
    sent_at: datetime | None = _timestamp()
    declined_at: datetime | None = _timestamp()
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()

    @classmethod
    def from_request(cls, request: IntroductionRequest) -> IntroductionRequestRecord:
        return cls(**dehydrate(request))

    def to_request(self) -> IntroductionRequest:
        return hydrate(IntroductionRequest, self)
