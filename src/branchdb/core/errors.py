"""
Structured error types for the branchdb connection layer.

Every failure the layer raises is a ``BranchDBError``: a message plus a
category, a retryable flag, an ``ErrorContext`` (store, SQL excerpt,
config key) and the native exception it wraps.  The layer never retries;
report modules, HTTP handlers and the CLI read ``retryable`` and decide.

Hierarchy::

    BranchDBError
    ├── ConfigError                  CONFIG
    │   ├── MissingConfigError
    │   ├── InvalidConfigError
    │   └── DatabaseUnavailableError
    ├── DatabaseConnectionError      DATABASE, retryable
    └── DatabaseError                DATABASE
        ├── QueryError
        └── NotConnectedError        INTERNAL

Examples:
    >>> err = QueryError("Syntax error", sql="SELEC 1")
    >>> err.context.sql
    'SELEC 1'
    >>> err.to_dict()["category"]
    'DATABASE'

Guardrails:
    ❌ DON'T: Let a driver exception escape an adapter
    ✅ DO: Wrap it and pass the original as ``cause=``

Tags:
    error-handling, exception-hierarchy, database, branchdb

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

# Longest SQL excerpt kept on an error context.
MAX_SQL_CONTEXT = 500


class ErrorCategory(str, Enum):
    """Coarse error class; the HTTP layer maps it to a status code."""

    DATABASE = "DATABASE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


def truncate_sql(sql: str | None, limit: int = MAX_SQL_CONTEXT) -> str | None:
    """Collapse whitespace and cut long SQL down for logs and error context."""
    if sql is None:
        return None
    compact = " ".join(sql.split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 3] + "..."


def _type_name(db_type: Any) -> str | None:
    if db_type is None:
        return None
    return str(getattr(db_type, "value", db_type))


@dataclass
class ErrorContext:
    """Where an error happened.  Unset fields are left out of ``to_dict()``."""

    db_type: str | None = None
    sql: str | None = None
    config_key: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def update(self, **values: Any) -> None:
        known = {f.name for f in fields(self)} - {"metadata"}
        for key, value in values.items():
            if key in known:
                setattr(self, key, value)
            else:
                self.metadata[key] = value

    def to_dict(self) -> dict[str, Any]:
        flat = {
            "db_type": self.db_type,
            "sql": self.sql,
            "config_key": self.config_key,
        }
        return {k: v for k, v in flat.items() if v is not None} | self.metadata


class BranchDBError(Exception):
    """
    Base class for all branchdb errors.

    Attributes:
        message: Human readable message
        category: ``ErrorCategory``
        retryable: Whether repeating the call may succeed
        context: ``ErrorContext``
        cause: Wrapped native exception, also chained as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **values: Any) -> BranchDBError:
        """Attach context and return ``self``, for ``raise err.with_context(...)``."""
        self.context.update(**values)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Log/JSON-ready view of the error."""
        payload: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            payload["context"] = context
        if self.cause is not None:
            payload["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# ── Configuration ────────────────────────────────────────────────────────


class ConfigError(BranchDBError):
    """Bad or missing configuration.  Never retryable."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """A required variable is unset or empty."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(
            message or f"Missing required configuration: {key}",
            context=ErrorContext(config_key=key),
        )


class InvalidConfigError(ConfigError):
    """A variable is set but cannot be used (bad port, unknown type)."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(
            message or f"Invalid configuration for {key}: {value!r}",
            context=ErrorContext(config_key=key),
        )


class DatabaseUnavailableError(ConfigError):
    """The requested database type was never configured or failed to initialize."""

    def __init__(self, requested: Any, available: list[Any]):
        self.requested = requested
        self.available = list(available)
        names = ", ".join(_type_name(t) for t in self.available) or "none"
        super().__init__(
            f"Database {_type_name(requested)} is not configured or failed to initialize. "
            f"Available databases: {names}",
            context=ErrorContext(db_type=_type_name(requested)),
        )


# ── Connectivity ─────────────────────────────────────────────────────────


class DatabaseConnectionError(BranchDBError):
    """The native client or pool could not establish or verify connectivity."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# ── Queries ──────────────────────────────────────────────────────────────


class DatabaseError(BranchDBError):
    """Base for failures while talking to a connected store."""

    default_category = ErrorCategory.DATABASE


class NotConnectedError(DatabaseError):
    """A query was issued on an adapter without a native handle."""

    def __init__(self, db_type: Any):
        name = _type_name(db_type)
        super().__init__(
            f"Database {name} is not connected",
            category=ErrorCategory.INTERNAL,
            context=ErrorContext(db_type=name),
        )


class QueryError(DatabaseError):
    """The store rejected a query."""

    def __init__(
        self,
        message: str,
        *,
        sql: str | None = None,
        db_type: Any = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(db_type=_type_name(db_type), sql=truncate_sql(sql)),
            cause=cause,
        )


def is_retryable(error: BaseException) -> bool:
    """True for retryable branchdb errors and for raw connection/timeout errors."""
    if isinstance(error, BranchDBError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BranchDBError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "DatabaseUnavailableError",
    "DatabaseConnectionError",
    "DatabaseError",
    "NotConnectedError",
    "QueryError",
    "is_retryable",
    "truncate_sql",
]
