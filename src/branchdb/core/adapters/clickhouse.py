"""ClickHouse database adapter (clickhouse-connect async client)."""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any

import clickhouse_connect
from clickhouse_connect.driver.exceptions import Error as ClickHouseDriverError

from branchdb.core.errors import DatabaseConnectionError, ErrorContext, QueryError
from branchdb.core.logging import get_logger

from .base import DatabaseAdapter
from .types import ClickHouseConfig, DatabaseType, QueryOptions, QueryResult

logger = get_logger(__name__)

# Result formats understood by ``query()``: row-oriented objects or arrays.
DICT_FORMATS = frozenset({"JSONEACHROW", "JSON"})
LIST_FORMATS = frozenset({"JSONCOMPACTEACHROW", "JSONCOMPACT"})
DEFAULT_FORMAT = "JSONEachRow"


class ClickHouseAdapter(DatabaseAdapter):
    """
    ClickHouse adapter.

    Wraps one ``clickhouse_connect`` ``AsyncClient``.  Rows come back as
    dicts (``JSONEachRow``, the default) or lists (``JSONCompactEachRow``).
    """

    db_type = DatabaseType.CLICKHOUSE

    def __init__(self, config: ClickHouseConfig):
        super().__init__(config)

    async def connect(self) -> None:
        """Create the client and ping the server once."""
        if self._client is not None:
            return

        config = self._config
        try:
            client = await clickhouse_connect.get_async_client(
                host=config.host,
                port=config.port or 0,
                username=config.username,
                password=config.password.get_secret_value(),
                database=config.database,
                secure=config.secure,
            )
        except (ClickHouseDriverError, OSError) as e:
            raise self._connect_failed(str(e), e) from e

        try:
            alive = await client.ping()
        except (ClickHouseDriverError, OSError, TimeoutError) as e:
            await _close_client(client)
            raise self._connect_failed(str(e), e) from e
        if not alive:
            await _close_client(client)
            raise self._connect_failed("ping failed")

        self._client = client
        logger.info("database_connected", db_type=self.db_type.value, host=config.host, database=config.database)

    def _connect_failed(self, reason: str, cause: BaseException | None = None) -> DatabaseConnectionError:
        host = self._config.host
        logger.error("database_connect_failed", db_type=self.db_type.value, host=host, error=reason)
        return DatabaseConnectionError(
            f"Failed to connect to ClickHouse at {host}: {reason}",
            context=ErrorContext(db_type=self.db_type.value),
            cause=cause,
        )

    async def disconnect(self) -> None:
        """Close the ClickHouse client."""
        if self._client is None:
            return
        client, self._client = self._client, None
        await _close_client(client)
        logger.info("database_disconnected", db_type=self.db_type.value)

    async def is_connected(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except Exception:  # noqa: BLE001
            return False

    async def query(
        self,
        query: str | QueryOptions,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
        *,
        format: str | None = None,
    ) -> QueryResult[Any]:
        options = self._options(query, params, format)
        self._ensure_connected()
        as_dicts = _rows_as_dicts(options)

        try:
            result = await self._client.query(options.query, parameters=options.params)
        except ClickHouseDriverError as e:
            raise self._query_failed("query", options.query, e) from e

        if as_dicts:
            rows: list[Any] = list(result.named_results())
        else:
            rows = [list(row) for row in result.result_rows]
        return QueryResult.from_rows(rows, result.column_names)

    async def execute(
        self,
        query: str,
        params: Sequence[Any] | Mapping[str, Any] | None = None,
    ) -> Any:
        """Run a command (DDL, INSERT ... SELECT, OPTIMIZE, ...)."""
        self._ensure_connected()
        try:
            return await self._client.command(query, parameters=params)
        except ClickHouseDriverError as e:
            raise self._query_failed("execute", query, e) from e


def _rows_as_dicts(options: QueryOptions) -> bool:
    fmt = (options.format or DEFAULT_FORMAT).upper()
    if fmt in DICT_FORMATS:
        return True
    if fmt in LIST_FORMATS:
        return False
    raise QueryError(
        f"Unsupported ClickHouse result format: {options.format}",
        sql=options.query,
        db_type=DatabaseType.CLICKHOUSE,
    )


async def _close_client(client: Any) -> None:
    # AsyncClient.close() is a coroutine in newer clickhouse-connect releases
    result = client.close()
    if inspect.isawaitable(result):
        await result


__all__ = [
    "ClickHouseAdapter",
]
