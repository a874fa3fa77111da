"""Translate pipeline error codes into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from dealflow.services.pipeline.errors import PipelineError

logger = logging.getLogger(__name__)


def _map_error_code(code: str) -> int:
    if code.startswith("404_"):
        return status.HTTP_404_NOT_FOUND
    if code == "400_MISSING_IDENTIFIERS":
        return status.HTTP_400_BAD_REQUEST
    if code == "422_INVALID_FIELD":
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code == "502_EMAIL_DELIVERY":
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_error(exc: PipelineError, *, event: str, **context: object) -> HTTPException:
    logger.error(event, extra={"code": exc.code, **{k: str(v) for k, v in context.items()}})
    return HTTPException(status_code=_map_error_code(exc.code), detail=str(exc))
