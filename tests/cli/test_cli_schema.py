"""Tests for ``branchdb schema`` and ``branchdb serve`` commands."""

from __future__ import annotations

import json
from unittest.mock import patch

from typer.testing import CliRunner

from branchdb.cli.app import app
from branchdb.core.adapters.types import DatabaseType
from tests._support.fakes import FakeStore, build_manager

CH = DatabaseType.CLICKHOUSE
PG = DatabaseType.POSTGRESQL

runner = CliRunner()


def _manager_with(store: FakeStore, db_type: DatabaseType = CH):
    return patch("branchdb.cli.utils.make_manager", return_value=build_manager({db_type: store}))


class TestSchemaShow:
    def test_text(self):
        store = FakeStore(rows=[{"name": "sales", "type": "String", "comment": "branch sales"}])
        with _manager_with(store):
            result = runner.invoke(app, ["schema", "show"])
        assert result.exit_code == 0
        assert "Database Schema (1 tables):" in result.stdout
        assert "Table: sales" in result.stdout

    def test_json(self):
        store = FakeStore(rows=[{"name": "sales", "type": "String"}])
        with _manager_with(store):
            result = runner.invoke(app, ["schema", "show", "--json"])
        assert result.exit_code == 0
        [table] = json.loads(result.stdout)
        assert table["table_name"] == "sales"
        assert table["columns"][0]["name"] == "sales"

    def test_empty(self):
        with _manager_with(FakeStore(rows=[])):
            result = runner.invoke(app, ["schema", "show"])
        assert result.exit_code == 0
        assert "No tables found in database." in result.stdout

    def test_postgres_store(self):
        store = FakeStore(
            rows=[
                {
                    "table_schema": "public",
                    "table_name": "invoices",
                    "column_name": "id",
                    "data_type": "integer",
                    "column_default": None,
                }
            ]
        )
        with _manager_with(store, PG):
            result = runner.invoke(app, ["schema", "show", "-d", "postgresql"])
        assert result.exit_code == 0
        assert "Table: invoices" in result.stdout
        assert "information_schema.columns" in store.queries[0]


class TestSchemaRefresh:
    def test_success(self):
        store = FakeStore(rows=[{"name": "sales", "type": "String"}])
        with _manager_with(store):
            result = runner.invoke(app, ["schema", "refresh", "--json"])
        assert result.exit_code == 0
        body = json.loads(result.stdout)
        assert body["success"] is True
        assert body["table_count"] == 1

    def test_failure_exits_1(self):
        with _manager_with(FakeStore(), CH):
            result = runner.invoke(app, ["schema", "refresh", "-d", "POSTGRESQL"])
        assert result.exit_code == 1
        assert "Schema refresh failed" in result.output


class TestServe:
    def test_start_runs_app_factory(self):
        with patch("branchdb.cli.serve.uvicorn.run") as run:
            result = runner.invoke(app, ["serve", "start", "--port", "9000"])
        assert result.exit_code == 0
        run.assert_called_once_with(
            "branchdb.api:create_app",
            factory=True,
            host="0.0.0.0",
            port=9000,
            reload=False,
            log_level="info",
        )
