"""LP directory models consumed by the pipeline for display context."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, EmailStr, Field


class PartnerType(str, Enum):
    GENERAL_PARTNER = "general_partner"
    VENTURE_PARTNER = "venture_partner"
    LIMITED_PARTNER = "limited_partner"


class PartnerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LimitedPartnerCreate(BaseModel):
    name: str
    email: EmailStr
    company: str | None = None
    title: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    avatar_url: str | None = None
    investment_amount: float = 0
    commitment_date: date | None = None
    status: PartnerStatus = PartnerStatus.ACTIVE
    partner_type: PartnerType = PartnerType.LIMITED_PARTNER
    expertise_areas: list[str] = Field(default_factory=list)
    notes: str | None = None


class LimitedPartner(LimitedPartnerCreate):
    id: UUID = Field(default_factory=uuid4)
    email: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


# Fields the directory row cannot hold as null; a null here keeps the stored value.
REQUIRED_PARTNER_FIELDS = frozenset(
    {"name", "email", "investment_amount", "status", "partner_type", "expertise_areas"}
)


class LimitedPartnerUpdate(BaseModel):
    """Partial update: absent keys are preserved, explicit nulls clear optional fields."""

    name: str | None = None
    email: EmailStr | None = None
    company: str | None = None
    title: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    avatar_url: str | None = None
    investment_amount: float | None = None
    commitment_date: date | None = None
    status: PartnerStatus | None = None
    partner_type: PartnerType | None = None
    expertise_areas: list[str] | None = None
    notes: str | None = None

    def changes(self) -> dict[str, object]:
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name not in REQUIRED_PARTNER_FIELDS
        }
