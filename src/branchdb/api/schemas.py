"""
API schemas: response envelopes and RFC 7807 errors.

Every error response is a :class:`ProblemDetail`.  Data endpoints return
plain models; there is no paging in this API.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from branchdb.core.adapters.types import DatabaseType

# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Example:
        {
            "type": "about:blank",
            "title": "Database unavailable",
            "status": 503,
            "detail": "Database POSTGRESQL is not configured or failed to initialize. ...",
            "instance": "http://testserver/api/schema",
            "code": "CONFIG"
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    code: str | None = Field(default=None, description="Error category (CONFIG, DATABASE, ...)")


# ── Databases ────────────────────────────────────────────────────────────


class DatabaseSummary(BaseModel):
    """One catalog entry, without connection parameters."""

    key: str = Field(description="Catalog key, e.g. DB1")
    name: str = Field(description="Display name (DB<n>_NAME, or the key)")
    type: DatabaseType


class AvailableDatabasesResponse(BaseModel):
    """Stores the running manager has connected."""

    available: list[DatabaseType]
    primary: DatabaseType | None = None
    secondary: DatabaseType | None = None


# ── Schema cache ─────────────────────────────────────────────────────────


class SchemaRefreshResponse(BaseModel):
    success: bool
    message: str = ""
    table_count: int = 0
    last_updated: datetime | None = None
    error: str | None = None


__all__ = [
    "AvailableDatabasesResponse",
    "DatabaseSummary",
    "ProblemDetail",
    "SchemaRefreshResponse",
]
