"""HTTP middleware and exception handlers producing the error envelope."""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gitpanel.errors import GitpanelError
from gitpanel.models import ErrorDetail, ErrorResponse

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_QUIET_PATHS = frozenset({"/api/health"})

_CODE_BY_STATUS = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
}


def _envelope(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def request_logging_middleware(request: Request, call_next):
    """Bind a request id to the log context and log each request's outcome.

    A client-supplied ``X-Request-ID`` is reused so front-end and server logs
    can be correlated; the id is echoed on the response.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    log = logger.debug if request.url.path in _QUIET_PATHS else logger.info
    start_time = time.monotonic()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request crashed", duration_ms=round((time.monotonic() - start_time) * 1000, 2)
        )
        raise
    else:
        log(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        structlog.contextvars.clear_contextvars()


async def http_exception_handler(request: Request, exc: HTTPException):
    """Pass structured details through; wrap plain ones in the envelope."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return _envelope(
        exc.status_code,
        _CODE_BY_STATUS.get(exc.status_code, "INTERNAL_ERROR"),
        str(exc.detail),
    )


async def gitpanel_error_handler(request: Request, exc: GitpanelError):
    """Last resort for domain errors no route translated itself."""
    logger.warning("Unhandled domain error", code=exc.code, error=str(exc))
    return _envelope(400, exc.code, str(exc))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _envelope(422, "VALIDATION_ERROR", "Invalid request", {"errors": exc.errors()})
