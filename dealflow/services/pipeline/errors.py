"""Shared error classes for the deal evaluation pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base exception raised by pipeline services and repositories."""

    def __init__(self, message: str, code: str = "PIPELINE_ERROR") -> None:
        super().__init__(message)
        self.code = code


class RecordNotFoundError(PipelineError):
    """Raised when a referenced deal, vote or LP does not exist."""


class PipelineValidationError(PipelineError):
    """Raised when identifying fields are missing; nothing is written."""


class PipelinePersistenceError(PipelineError):
    """Raised when the store fails to read or write pipeline rows."""


class IntroductionDeliveryError(PipelineError):
    """Raised when the outbound mailer fails after the request was marked sent."""
