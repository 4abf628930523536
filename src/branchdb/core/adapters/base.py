"""Database adapter base class.

Manifesto:
    Report modules should not care whether a branch's data lives in
    ClickHouse or PostgreSQL.  Every store is wrapped in an adapter with the
    same async lifecycle (connect/disconnect/is_connected) and the same
    query surface returning a ``QueryResult``.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``is_connected()``,
      ``query()``, ``execute()``
    - ``reconnect()`` for replacing a stale native handle
    - ``_ensure_connected()`` precondition raising ``NotConnectedError``
    - Async context-manager protocol for connection lifecycle

Tags:
    branchdb, database, abstract-base, adapter-pattern, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from branchdb.core.errors import NotConnectedError, QueryError, truncate_sql
from branchdb.core.logging import get_logger

from .types import ClickHouseConfig, DatabaseType, PostgreSQLConfig, QueryOptions, QueryResult

logger = get_logger(__name__)


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    An adapter owns exactly one native client or pool.  ``_client`` is
    ``None`` while disconnected; subclasses only assign it once the
    connectivity round-trip has succeeded.
    """

    db_type: ClassVar[DatabaseType]

    def __init__(self, config: ClickHouseConfig | PostgreSQLConfig):
        if config.db_type != self.db_type:
            raise TypeError(
                f"{type(self).__name__} cannot be built from a {config.db_type.value} config"
            )
        self._config = config
        self._client: Any = None

    @property
    def config(self) -> ClickHouseConfig | PostgreSQLConfig:
        """Configuration the adapter was constructed from."""
        return self._config

    @property
    def client(self) -> Any:
        """Native client/pool, or ``None`` while disconnected."""
        return self._client

    def get_client(self) -> Any:
        """Native client/pool for store-specific features."""
        return self._client

    @abstractmethod
    async def connect(self) -> None:
        """Establish and verify the connection. No-op when already connected."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the native client/pool. No-op when disconnected."""
        ...

    @abstractmethod
    async def is_connected(self) -> bool:
        """Probe the store; ``False`` on any probe failure."""
        ...

    @abstractmethod
    async def query(
        self,
        query: str | QueryOptions,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
        *,
        format: str | None = None,
    ) -> QueryResult[Any]:
        """Run a read query and return the uniform result."""
        ...

    @abstractmethod
    async def execute(
        self,
        query: str,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> Any:
        """Run a statement for its side effects; returns the native result."""
        ...

    async def reconnect(self) -> None:
        """Drop the current handle (if any) and connect again."""
        await self.disconnect()
        await self.connect()

    def _ensure_connected(self) -> None:
        if self._client is None:
            raise NotConnectedError(self.db_type)

    @staticmethod
    def _options(
        query: str | QueryOptions,
        params: Sequence[Any] | Mapping[str, Any] | None,
        format: str | None,
    ) -> QueryOptions:
        if isinstance(query, QueryOptions):
            return query
        return QueryOptions(query=query, params=params, format=format)

    def _query_failed(self, operation: str, sql: str, exc: BaseException) -> QueryError:
        """Log a rejected statement and build the ``QueryError`` to raise."""
        logger.error(
            f"{operation}_failed",
            db_type=self.db_type.value,
            sql=truncate_sql(sql),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return QueryError(
            f"{self.db_type.value} {operation} failed: {exc}",
            sql=sql,
            db_type=self.db_type,
            cause=exc,
        )

    async def __aenter__(self) -> DatabaseAdapter:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def __repr__(self) -> str:
        state = "connected" if self._client is not None else "disconnected"
        return f"{type(self).__name__}(host={self._config.host!r}, {state})"


__all__ = [
    "DatabaseAdapter",
]
