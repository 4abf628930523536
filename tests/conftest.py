"""
Shared pytest fixtures for branchdb tests.

- ``clean_env``: removes every database variable from the process
  environment so ``.env``-independent mappings can be passed explicitly
- ``reset_installed_manager``: keeps the module-level manager isolated
- ``reset_logging``: drops structlog configuration (and any stream a CLI
  invocation configured) after each test
- ``stores`` / ``manager``: in-memory ClickHouse + PostgreSQL setup
"""

from __future__ import annotations

import os
import re

import pytest
import structlog

from branchdb.core.adapters.types import DatabaseType
from branchdb.core.manager import install_manager
from tests._support.fakes import FakeStore, build_manager

_DB_VAR = re.compile(r"^(DB\d+_|DB_|CLICKHOUSE_|POSTGRES_|DEFAULT_DATABASE$|BRANCHDB_)")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if _DB_VAR.match(name):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_installed_manager():
    install_manager(None)
    yield
    install_manager(None)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def stores() -> dict[DatabaseType, FakeStore]:
    return {
        DatabaseType.CLICKHOUSE: FakeStore(),
        DatabaseType.POSTGRESQL: FakeStore(),
    }


@pytest.fixture
def manager(stores):
    return build_manager(stores, primary=DatabaseType.CLICKHOUSE, secondary=DatabaseType.POSTGRESQL)
