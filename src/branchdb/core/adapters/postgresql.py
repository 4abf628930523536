"""PostgreSQL database adapter (asyncpg pool)."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import asyncpg

from branchdb.core.errors import DatabaseConnectionError, ErrorContext, QueryError
from branchdb.core.logging import get_logger

from .base import DatabaseAdapter
from .types import DatabaseType, PostgreSQLConfig, QueryOptions, QueryResult

logger = get_logger(__name__)

T = TypeVar("T")

_CONNECT_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)
# Connection drops and pool timeouts mid-query surface as OSError / TimeoutError.
_QUERY_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL adapter.

    Owns one ``asyncpg`` pool sized by ``max_connections``.  Queries use
    positional ``$1, $2, ...`` parameters and return rows as plain dicts.
    """

    db_type = DatabaseType.POSTGRESQL

    def __init__(self, config: PostgreSQLConfig):
        super().__init__(config)

    @property
    def pool(self) -> asyncpg.Pool | None:
        return self._client

    async def connect(self) -> None:
        """Create the pool and verify it by acquiring one connection."""
        if self._client is not None:
            return

        config = self._config
        pool = None
        try:
            pool = await asyncpg.create_pool(
                host=config.host,
                port=config.port,
                user=config.username or None,
                password=config.password.get_secret_value() or None,
                database=config.database or None,
                ssl="require" if config.ssl else None,
                min_size=config.min_connections,
                max_size=config.max_connections,
            )
            await _probe(pool)
        except _CONNECT_ERRORS as e:
            if pool is not None:
                pool.terminate()
            logger.error("database_connect_failed", db_type=self.db_type.value, host=config.host, error=str(e))
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL at {config.host}:{config.port}: {e}",
                context=ErrorContext(db_type=self.db_type.value),
                cause=e,
            ) from e

        self._client = pool
        logger.info(
            "database_connected",
            db_type=self.db_type.value,
            host=config.host,
            database=config.database,
            max_connections=config.max_connections,
        )

    async def disconnect(self) -> None:
        """Close the pool."""
        if self._client is None:
            return
        pool, self._client = self._client, None
        await pool.close()
        logger.info("database_disconnected", db_type=self.db_type.value)

    async def is_connected(self) -> bool:
        if self._client is None:
            return False
        try:
            await _probe(self._client)
            return True
        except Exception:  # noqa: BLE001
            return False

    async def query(
        self,
        query: str | QueryOptions,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
        *,
        format: str | None = None,
    ) -> QueryResult[dict[str, Any]]:
        options = self._options(query, params, format)
        self._ensure_connected()
        args = _positional(options.query, options.params)

        pool = self._client
        try:
            conn = await pool.acquire()
            try:
                stmt = await conn.prepare(options.query)
                records = await stmt.fetch(*args)
                columns = [attr.name for attr in stmt.get_attributes()]
            finally:
                await pool.release(conn)
        except _QUERY_ERRORS as e:
            raise self._query_failed("query", options.query, e) from e

        return QueryResult.from_rows([dict(record) for record in records], columns)

    async def execute(
        self,
        query: str,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> Any:
        """Run a statement; returns asyncpg's status string (e.g. ``"INSERT 0 1"``)."""
        self._ensure_connected()
        args = _positional(query, params)
        try:
            return await self._client.execute(query, *args)
        except _QUERY_ERRORS as e:
            raise self._query_failed("execute", query, e) from e

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Run a block inside one transaction on one pooled connection.

        Commits when the block exits normally, rolls back and re-raises
        otherwise; the connection is released on every path.
        """
        self._ensure_connected()
        pool = self._client
        conn = await pool.acquire()
        try:
            tx = conn.transaction()
            await tx.start()
            try:
                yield conn
            except Exception:
                await tx.rollback()
                raise
            await tx.commit()
        finally:
            await pool.release(conn)

    async def transaction(self, callback: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
        """Await ``callback(conn)`` inside ``begin()`` and return its result."""
        async with self.begin() as conn:
            return await callback(conn)


async def _probe(pool: Any) -> None:
    conn = await pool.acquire()
    try:
        await conn.fetchval("SELECT 1")
    finally:
        await pool.release(conn)


def _positional(sql: str, params: Sequence[Any] | Mapping[str, Any] | None) -> tuple[Any, ...]:
    if params is None:
        return ()
    if isinstance(params, Mapping):
        raise QueryError(
            "PostgreSQL queries take positional parameters ($1, $2, ...), not a mapping",
            sql=sql,
            db_type=DatabaseType.POSTGRESQL,
        )
    return tuple(params)


__all__ = [
    "PostgreSQLAdapter",
]
