"""
Error-handling middleware: maps branchdb errors to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from branchdb.api.schemas import ProblemDetail
from branchdb.core.errors import (
    BranchDBError,
    ConfigError,
    DatabaseConnectionError,
    QueryError,
)
from branchdb.core.logging import get_logger

logger = get_logger(__name__)

# ── Error type → HTTP status mapping ─────────────────────────────────────

# Checked in order; the first matching class wins.
ERROR_TYPE_TO_STATUS: list[tuple[type[BranchDBError], int, str]] = [
    (QueryError, 400, "Query rejected"),
    (DatabaseConnectionError, 503, "Database unreachable"),
    (ConfigError, 503, "Database unavailable"),
]


def status_for_error(exc: BranchDBError) -> tuple[int, str]:
    """Resolve an error to ``(status, title)``, defaulting to 500."""
    for error_type, status, title in ERROR_TYPE_TO_STATUS:
        if isinstance(exc, error_type):
            return status, title
    return 500, "Internal Server Error"


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    code: str | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        code=code,
    )
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


async def branchdb_exception_handler(request: Request, exc: BranchDBError) -> JSONResponse:
    """Typed library errors: status from the error class, message as detail."""
    status, title = status_for_error(exc)
    logger.warning("request_failed", path=request.url.path, status=status, **exc.to_dict())
    return problem_response(
        status=status,
        title=title,
        detail=exc.message,
        instance=str(request.url),
        code=exc.category.value,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: returns 500 with ProblemDetail."""
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
