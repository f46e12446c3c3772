"""Shared error helpers for API responses."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from gitpanel.errors import GitError, GitpanelError, InvalidHunksError, UnknownChangelistError
from gitpanel.models import ErrorDetail, ErrorResponse


def raise_http_error(
    code: str, message: str, status_code: int, details: dict | None = None
) -> NoReturn:
    """Raise an HTTPException with a structured error payload.

    Args:
        code: Stable error code string.
        message: Human-readable error message.
        status_code: HTTP status to return.
        details: Optional machine-readable context.
    """
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error=ErrorDetail(code=code, message=message, details=details)
        ).model_dump(),
    )


_STATUS_BY_ERROR: list[tuple[type[GitpanelError], int]] = [
    (UnknownChangelistError, 404),
    (InvalidHunksError, 409),
    (GitError, 502),
]


def raise_domain_error(exc: GitpanelError) -> NoReturn:
    """Convert a domain exception into a structured HTTP error."""
    status_code = next(
        (status for kind, status in _STATUS_BY_ERROR if isinstance(exc, kind)), 400
    )
    details = None
    if isinstance(exc, InvalidHunksError):
        details = {"invalid_hunks": [hunk.model_dump(mode="json") for hunk in exc.invalid_hunks]}
    raise_http_error(exc.code, str(exc), status_code, details)
