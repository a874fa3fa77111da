"""LP vote endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from dealflow.api.routes.errors import to_http_error
from dealflow.models.vote import Vote, VoteDeleted, VoteSubmission, VoteUpdate, VoteWithContext
from dealflow.services.pipeline.errors import PipelineError
from dealflow.services.pipeline.service import DealPipelineService, get_pipeline_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/votes", response_model=list[VoteWithContext])
async def list_votes(
    deal_id: UUID | None = Query(None, description="Restrict to votes on one deal."),
    service: DealPipelineService = Depends(get_pipeline_service),
) -> list[VoteWithContext]:
    try:
        return service.list_votes(deal_id)
    except PipelineError as exc:
        raise to_http_error(exc, event="votes.api_error") from exc


@router.post("/votes", response_model=Vote, status_code=status.HTTP_201_CREATED)
async def submit_vote(
    payload: VoteSubmission,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> Vote:
    """Create or merge the vote for (deal_id, lp_id)."""
    try:
        return service.submit_vote(payload)
    except PipelineError as exc:
        raise to_http_error(
            exc, event="votes.api_error", deal_id=payload.deal_id, lp_id=payload.lp_id
        ) from exc


@router.put("/votes/{vote_id}", response_model=Vote)
async def update_vote(
    vote_id: UUID,
    payload: VoteUpdate,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> Vote:
    try:
        return service.update_vote(vote_id, payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="votes.api_error", vote_id=vote_id) from exc


@router.delete("/votes/{vote_id}", response_model=VoteDeleted)
async def delete_vote(
    vote_id: UUID,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> VoteDeleted:
    try:
        return service.delete_vote(vote_id)
    except PipelineError as exc:
        raise to_http_error(exc, event="votes.api_error", vote_id=vote_id) from exc
