"""
In-memory table/column schema cache.

Loads the list of tables and their columns from one store once, keeps it in
memory and hands it to callers that need to describe the database (the
schema endpoint, the CLI, prompt builders).  Loads are serialized: callers
arriving while a load is running wait for it and share its result.

ClickHouse is read with ``SHOW TABLES`` + ``DESCRIBE TABLE``; PostgreSQL with
``information_schema.columns`` (every schema except the system ones).

Tags:
    branchdb, schema, cache, introspection

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from branchdb.core.adapters.base import DatabaseAdapter
from branchdb.core.adapters.types import DatabaseType
from branchdb.core.errors import BranchDBError
from branchdb.core.logging import get_logger
from branchdb.core.manager import ConnectionManager

logger = get_logger(__name__)

_PG_COLUMNS_SQL = """
SELECT table_schema, table_name, column_name, data_type, column_default
FROM information_schema.columns
WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
ORDER BY table_schema, table_name, ordinal_position
"""


# ── Models ───────────────────────────────────────────────────────────────


class TableColumn(BaseModel):
    name: str
    type: str
    default_type: str | None = None
    default_expression: str | None = None
    comment: str | None = None


class TableSchema(BaseModel):
    table_name: str
    columns: list[TableColumn] = Field(default_factory=list)


class SchemaRefreshResult(BaseModel):
    """Outcome of :meth:`SchemaCache.refresh` (never raises)."""

    success: bool
    table_count: int = 0
    last_updated: datetime | None = None
    error: str | None = None


class SchemaCacheStatus(BaseModel):
    is_loaded: bool
    is_loading: bool
    table_count: int
    last_updated: datetime | None = None
    db_type: DatabaseType | None = None


# ── Cache ────────────────────────────────────────────────────────────────


class SchemaCache:
    """
    Schema cache over one store of a :class:`ConnectionManager`.

    Args:
        manager: Manager providing the adapter
        db_type: Store to describe; the primary store when ``None``
    """

    def __init__(self, manager: ConnectionManager, db_type: DatabaseType | None = None):
        self._manager = manager
        self._db_type = db_type
        self._tables: list[TableSchema] = []
        self._last_updated: datetime | None = None
        self._lock = asyncio.Lock()

    @property
    def tables(self) -> list[TableSchema]:
        return list(self._tables)

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    async def load(self) -> list[TableSchema]:
        """Read the schema from the store and replace the cache.

        A caller that waited on a load already finished by someone else
        gets that result without a second round of queries.
        """
        if self._lock.locked():
            async with self._lock:
                if self._tables:
                    return list(self._tables)

        async with self._lock:
            adapter = await self._manager.get_adapter(self._db_type)
            logger.info("schema_load_started", db_type=adapter.db_type.value)
            try:
                if adapter.db_type == DatabaseType.CLICKHOUSE:
                    tables = await self._load_clickhouse(adapter)
                else:
                    tables = await self._load_postgresql(adapter)
            except BranchDBError as e:
                logger.error("schema_load_failed", db_type=adapter.db_type.value, error=e.message)
                raise

            self._tables = tables
            self._last_updated = datetime.now(UTC)
            logger.info(
                "schema_load_completed",
                db_type=adapter.db_type.value,
                table_count=len(tables),
            )
            return list(tables)

    async def get(self) -> list[TableSchema]:
        """Cached schema, loading it first when the cache is empty."""
        if not self._tables:
            return await self.load()
        return list(self._tables)

    async def refresh(self) -> SchemaRefreshResult:
        """Clear and reload. Failures are reported in the result, not raised."""
        self._tables = []
        self._last_updated = None
        try:
            tables = await self.load()
        except BranchDBError as e:
            return SchemaRefreshResult(success=False, error=e.message)
        return SchemaRefreshResult(
            success=True,
            table_count=len(tables),
            last_updated=self._last_updated,
        )

    def status(self) -> SchemaCacheStatus:
        return SchemaCacheStatus(
            is_loaded=bool(self._tables),
            is_loading=self._lock.locked(),
            table_count=len(self._tables),
            last_updated=self._last_updated,
            db_type=self._db_type or self._manager.primary_type,
        )

    async def describe(self) -> str:
        """Plain-text rendering of every table and its columns."""
        tables = await self.get()
        if not tables:
            return "No tables found in database."

        lines = [f"Database Schema ({len(tables)} tables):", ""]
        for table in tables:
            lines.append(f"Table: {table.table_name}")
            lines.append("Columns:")
            for col in table.columns:
                line = f"  - {col.name} ({col.type})"
                if col.comment:
                    line += f" -- {col.comment}"
                lines.append(line)
            lines.append("")
        return "\n".join(lines)

    # ── Store readers ────────────────────────────────────────────────────

    @staticmethod
    async def _load_clickhouse(adapter: DatabaseAdapter) -> list[TableSchema]:
        listing = await adapter.query("SHOW TABLES", format="JSONEachRow")
        tables: list[TableSchema] = []
        for row in listing.data:
            name = row["name"]
            described = await adapter.query(f"DESCRIBE TABLE `{name}`", format="JSONEachRow")
            tables.append(
                TableSchema(
                    table_name=name,
                    columns=[_clickhouse_column(col) for col in described.data],
                )
            )
        return tables

    @staticmethod
    async def _load_postgresql(adapter: DatabaseAdapter) -> list[TableSchema]:
        result = await adapter.query(_PG_COLUMNS_SQL)
        by_table: dict[str, TableSchema] = {}
        for row in result.data:
            schema = row["table_schema"]
            name = row["table_name"] if schema == "public" else f"{schema}.{row['table_name']}"
            table = by_table.setdefault(name, TableSchema(table_name=name))
            table.columns.append(
                TableColumn(
                    name=row["column_name"],
                    type=row["data_type"],
                    default_expression=row.get("column_default"),
                )
            )
        return list(by_table.values())


def _clickhouse_column(row: dict[str, Any]) -> TableColumn:
    return TableColumn(
        name=row["name"],
        type=row["type"],
        default_type=row.get("default_type") or None,
        default_expression=row.get("default_expression") or None,
        comment=row.get("comment") or None,
    )


__all__ = [
    "SchemaCache",
    "SchemaCacheStatus",
    "SchemaRefreshResult",
    "TableColumn",
    "TableSchema",
]
