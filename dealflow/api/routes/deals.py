"""Deal pipeline endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from dealflow.api.routes.errors import to_http_error
from dealflow.models.deal import DealCreate, DealUpdate, DealView
from dealflow.services.pipeline.errors import PipelineError
from dealflow.services.pipeline.service import DealPipelineService, get_pipeline_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/deals", response_model=list[DealView])
async def list_deals(
    include_votes: bool = Query(False, description="Attach votes and the vote summary."),
    include_founders: bool = Query(False, description="Attach the deal's founders."),
    service: DealPipelineService = Depends(get_pipeline_service),
) -> list[DealView]:
    """List active deals, newest first."""
    try:
        return service.list_deals(include_votes=include_votes, include_founders=include_founders)
    except PipelineError as exc:
        raise to_http_error(exc, event="deals.api_error") from exc


@router.post("/deals", response_model=DealView, status_code=status.HTTP_201_CREATED)
async def create_deal(
    payload: DealCreate,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> DealView:
    try:
        return service.create_deal(payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="deals.api_error") from exc


@router.get("/deals/{deal_id}", response_model=DealView)
async def get_deal(
    deal_id: UUID,
    include_votes: bool = Query(False, description="Attach votes and the vote summary."),
    include_founders: bool = Query(False, description="Attach the deal's founders."),
    service: DealPipelineService = Depends(get_pipeline_service),
) -> DealView:
    try:
        return service.get_deal(
            deal_id, include_votes=include_votes, include_founders=include_founders
        )
    except PipelineError as exc:
        raise to_http_error(exc, event="deals.api_error", deal_id=deal_id) from exc


@router.api_route("/deals/{deal_id}", methods=["PUT", "PATCH"], response_model=DealView)
async def update_deal(
    deal_id: UUID,
    payload: DealUpdate,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> DealView:
    """Partially update a deal; stage changes stamp transition timestamps."""
    try:
        return service.update_deal(deal_id, payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="deals.api_error", deal_id=deal_id) from exc
