"""Tests for ``branchdb.core.schema_cache``."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from branchdb.core.adapters.types import DatabaseType, QueryResult
from branchdb.core.errors import DatabaseUnavailableError, QueryError
from branchdb.core.manager import ConnectionManager
from branchdb.core.schema_cache import SchemaCache

CH_TABLES = {
    "SHOW TABLES": [{"name": "sales"}, {"name": "branches"}],
    "DESCRIBE TABLE `sales`": [
        {"name": "branch", "type": "String", "default_type": "", "default_expression": "", "comment": "branch code"},
        {"name": "total", "type": "Decimal(18, 2)", "default_type": "DEFAULT", "default_expression": "0", "comment": ""},
    ],
    "DESCRIBE TABLE `branches`": [
        {"name": "code", "type": "String", "default_type": "", "default_expression": "", "comment": ""},
    ],
}

PG_ROWS = [
    {"table_schema": "public", "table_name": "invoices", "column_name": "id", "data_type": "integer",
     "column_default": "nextval('invoices_id_seq'::regclass)"},
    {"table_schema": "public", "table_name": "invoices", "column_name": "amount", "data_type": "numeric",
     "column_default": None},
    {"table_schema": "hr", "table_name": "staff", "column_name": "name", "data_type": "text",
     "column_default": None},
]


def _adapter(db_type: DatabaseType, responses, delay: float = 0.0):
    async def query(sql, params=None, *, format=None):
        await asyncio.sleep(delay)
        rows = responses(sql) if callable(responses) else responses[sql]
        return QueryResult.from_rows(rows)

    adapter = MagicMock()
    adapter.db_type = db_type
    adapter.query = AsyncMock(side_effect=query)
    return adapter


def _manager(adapter, primary: DatabaseType | None = None):
    manager = MagicMock(spec=ConnectionManager)
    manager.get_adapter = AsyncMock(return_value=adapter)
    manager.primary_type = primary or adapter.db_type
    return manager


class TestClickHouseSchema:
    @pytest.mark.asyncio
    async def test_load(self):
        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, CH_TABLES)))
        tables = await cache.load()

        assert [t.table_name for t in tables] == ["sales", "branches"]
        branch, total = tables[0].columns
        assert branch.comment == "branch code"
        assert branch.default_type is None
        assert total.type == "Decimal(18, 2)"
        assert total.default_expression == "0"
        assert cache.last_updated is not None

    @pytest.mark.asyncio
    async def test_empty_database(self):
        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, {"SHOW TABLES": []})))
        assert await cache.load() == []
        assert await cache.describe() == "No tables found in database."


class TestPostgreSQLSchema:
    @pytest.mark.asyncio
    async def test_groups_columns_by_table(self):
        adapter = _adapter(DatabaseType.POSTGRESQL, lambda sql: PG_ROWS)
        tables = await SchemaCache(_manager(adapter)).load()

        assert [t.table_name for t in tables] == ["invoices", "hr.staff"]
        assert [c.name for c in tables[0].columns] == ["id", "amount"]
        assert tables[0].columns[0].default_expression.startswith("nextval")
        assert "information_schema.columns" in adapter.query.call_args.args[0]


class TestCaching:
    @pytest.mark.asyncio
    async def test_get_loads_once(self):
        adapter = _adapter(DatabaseType.CLICKHOUSE, CH_TABLES)
        cache = SchemaCache(_manager(adapter))
        await cache.get()
        await cache.get()
        assert adapter.query.await_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_round(self):
        adapter = _adapter(DatabaseType.CLICKHOUSE, CH_TABLES, delay=0.01)
        cache = SchemaCache(_manager(adapter))
        results = await asyncio.gather(cache.load(), cache.load(), cache.load())
        assert all(len(r) == 2 for r in results)
        assert adapter.query.await_count == 3

    @pytest.mark.asyncio
    async def test_uses_configured_store(self):
        adapter = _adapter(DatabaseType.POSTGRESQL, lambda sql: PG_ROWS)
        manager = _manager(adapter, primary=DatabaseType.CLICKHOUSE)
        cache = SchemaCache(manager, DatabaseType.POSTGRESQL)
        await cache.load()
        manager.get_adapter.assert_awaited_with(DatabaseType.POSTGRESQL)
        assert cache.status().db_type == DatabaseType.POSTGRESQL


class TestRefresh:
    @pytest.mark.asyncio
    async def test_success(self):
        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, CH_TABLES)))
        result = await cache.refresh()
        assert result.success is True
        assert result.table_count == 2
        assert result.last_updated == cache.last_updated

    @pytest.mark.asyncio
    async def test_query_failure_reported(self):
        def failing(sql):
            raise QueryError("Code: 497. Not enough privileges", sql=sql)

        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, failing)))
        result = await cache.refresh()
        assert result.success is False
        assert "privileges" in result.error
        assert cache.status().is_loaded is False

    @pytest.mark.asyncio
    async def test_unavailable_store_reported(self):
        manager = MagicMock(spec=ConnectionManager)
        manager.get_adapter = AsyncMock(side_effect=DatabaseUnavailableError(DatabaseType.CLICKHOUSE, []))
        result = await SchemaCache(manager).refresh()
        assert result.success is False
        assert "Available databases: none" in result.error

    @pytest.mark.asyncio
    async def test_load_propagates_errors(self):
        def failing(sql):
            raise QueryError("denied", sql=sql)

        with pytest.raises(QueryError):
            await SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, failing))).load()


class TestStatusAndDescribe:
    @pytest.mark.asyncio
    async def test_status(self):
        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, CH_TABLES)))
        before = cache.status()
        assert before.is_loaded is False
        assert before.table_count == 0
        assert before.db_type == DatabaseType.CLICKHOUSE

        await cache.load()
        after = cache.status()
        assert after.is_loaded is True
        assert after.is_loading is False
        assert after.table_count == 2

    @pytest.mark.asyncio
    async def test_describe(self):
        cache = SchemaCache(_manager(_adapter(DatabaseType.CLICKHOUSE, CH_TABLES)))
        text = await cache.describe()
        assert text.startswith("Database Schema (2 tables):")
        assert "Table: sales" in text
        assert "  - branch (String) -- branch code" in text
        assert "  - code (String)" in text
