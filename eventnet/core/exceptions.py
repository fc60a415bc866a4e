"""Custom exception hierarchy for eventnet."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            return f"{base} :: {self.details}"
        return base


class NotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ValidationError(ApplicationError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class ConflictError(ApplicationError):
    """A write collided with a unique constraint in the document store."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class EventNotApprovedError(ApplicationError):
    status_code = status.HTTP_409_CONFLICT
    code = "event_not_approved"


class ResourceExhaustedError(ApplicationError):
    """Raised when placeholder phone generation runs out of attempts."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "resource_exhausted"


class UpstreamUnavailableError(ApplicationError):
    """Raised when the embedding or generative capability fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_unavailable"


__all__ = [
    "ApplicationError",
    "ConflictError",
    "EventNotApprovedError",
    "NotFoundError",
    "ResourceExhaustedError",
    "UpstreamUnavailableError",
    "ValidationError",
]
