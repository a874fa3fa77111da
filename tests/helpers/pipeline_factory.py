from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from dealflow.models.deal import DealCreate, DealView
from dealflow.models.limited_partner import LimitedPartner, LimitedPartnerCreate
from dealflow.models.vote import Vote, VoteSubmission
from dealflow.services.pipeline.service import DealPipelineService

START = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class FrozenClock:
    """Deterministic clock injected into the pipeline service."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def make_deal(service: DealPipelineService, **overrides: Any) -> DealView:
    payload: dict[str, Any] = {
        "company_name": "Northwind Robotics",
        "industry": "Robotics",
        "funding_round": "Seed",
        "description": "Warehouse picking arms.",
        "company_url": "https://northwind.example",
    }
    payload.update(overrides)
    return service.create_deal(DealCreate(**payload))


def make_partner(service: DealPipelineService, **overrides: Any) -> LimitedPartner:
    payload: dict[str, Any] = {
        "name": "Avery Chen",
        "email": "avery@example.com",
        "company": "Chen Family Office",
        "title": "Principal",
    }
    payload.update(overrides)
    return service.create_limited_partner(LimitedPartnerCreate(**payload))


def cast_vote(service: DealPipelineService, deal_id, lp_id, **fields: Any) -> Vote:
    return service.submit_vote(VoteSubmission(deal_id=deal_id, lp_id=lp_id, **fields))
