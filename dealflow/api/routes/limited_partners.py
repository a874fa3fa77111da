"""LP directory endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from dealflow.api.routes.errors import to_http_error
from dealflow.models.limited_partner import (
    LimitedPartner,
    LimitedPartnerCreate,
    LimitedPartnerUpdate,
)
from dealflow.services.pipeline.errors import PipelineError
from dealflow.services.pipeline.service import DealPipelineService, get_pipeline_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/limited-partners", response_model=list[LimitedPartner])
async def list_limited_partners(
    service: DealPipelineService = Depends(get_pipeline_service),
) -> list[LimitedPartner]:
    try:
        return service.list_limited_partners()
    except PipelineError as exc:
        raise to_http_error(exc, event="limited_partners.api_error") from exc


@router.post(
    "/limited-partners", response_model=LimitedPartner, status_code=status.HTTP_201_CREATED
)
async def create_limited_partner(
    payload: LimitedPartnerCreate,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> LimitedPartner:
    try:
        return service.create_limited_partner(payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="limited_partners.api_error") from exc


@router.get("/limited-partners/{lp_id}", response_model=LimitedPartner)
async def get_limited_partner(
    lp_id: UUID,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> LimitedPartner:
    try:
        return service.get_limited_partner(lp_id)
    except PipelineError as exc:
        raise to_http_error(exc, event="limited_partners.api_error", lp_id=lp_id) from exc


@router.api_route(
    "/limited-partners/{lp_id}", methods=["PUT", "PATCH"], response_model=LimitedPartner
)
async def update_limited_partner(
    lp_id: UUID,
    payload: LimitedPartnerUpdate,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> LimitedPartner:
    """Apply the supplied fields; absent keys keep their stored value."""
    try:
        return service.update_limited_partner(lp_id, payload)
    except PipelineError as exc:
        raise to_http_error(exc, event="limited_partners.api_error", lp_id=lp_id) from exc


@router.delete("/limited-partners/{lp_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_limited_partner(
    lp_id: UUID,
    service: DealPipelineService = Depends(get_pipeline_service),
) -> Response:
    """Delete the LP after removing its votes and their introduction requests."""
    try:
        service.delete_limited_partner(lp_id)
    except PipelineError as exc:
        raise to_http_error(exc, event="limited_partners.api_error", lp_id=lp_id) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
