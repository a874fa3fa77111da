"""Introduction request endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from dealflow.api.routes.errors import to_http_error
from dealflow.models.introduction import (
    IntroductionActionResult,
    IntroductionCandidate,
    ManualIntroductionRequest,
    SendIntroductionRequest,
)
from dealflow.services.pipeline.errors import PipelineError
from dealflow.services.pipeline.service import DealPipelineService, get_pipeline_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/intro-requests", response_model=list[IntroductionCandidate])
async def list_introduction_candidates(
    service: DealPipelineService = Depends(get_pipeline_service),
) -> list[IntroductionCandidate]:
    """Votes eligible for an introduction, unactioned first."""
    try:
        return service.list_introduction_candidates()
    except PipelineError as exc:
        raise to_http_error(exc, event="introductions.api_error") from exc


@router.post(
    "/intro-requests/manual",
    response_model=IntroductionActionResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_manual_introduction(
    payload: ManualIntroductionRequest,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> IntroductionActionResult:
    try:
        return service.create_manual_introduction(payload)
    except PipelineError as exc:
        raise to_http_error(
            exc, event="introductions.api_error", deal_id=payload.deal_id, lp_id=payload.lp_id
        ) from exc


@router.post("/intro-requests/{vote_id}/send", response_model=IntroductionActionResult)
async def send_introduction(
    vote_id: UUID,
    payload: SendIntroductionRequest | None = Body(None),
    service: DealPipelineService = Depends(get_pipeline_service),
) -> IntroductionActionResult:
    try:
        return service.send_introduction(vote_id, payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="introductions.api_error", vote_id=vote_id) from exc


@router.post("/intro-requests/{vote_id}/decline", response_model=IntroductionActionResult)
async def decline_introduction(
    vote_id: UUID,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> IntroductionActionResult:
    try:
        return service.decline_introduction(vote_id)
    except PipelineError as exc:
        raise to_http_error(exc, event="introductions.api_error", vote_id=vote_id) from exc
