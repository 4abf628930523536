"""Database adapters -- one async interface over ClickHouse and PostgreSQL.

Manifesto:
    Branch data lives in ClickHouse (analytics replicas) and PostgreSQL
    (the accounting systems of record).  Report code issues SQL strings and
    consumes a ``QueryResult``; it never touches a driver directly.

Architecture::

    DatabaseAdapter (base.py)        Abstract async connect/query/execute
        |-- ClickHouseAdapter        clickhouse-connect AsyncClient
        |-- PostgreSQLAdapter        asyncpg Pool (+ transactions)

    AdapterRegistry (registry.py)    DatabaseType -> adapter class
    DatabaseType (types.py)          Enum of supported stores
    ClickHouseConfig / PostgreSQLConfig (types.py)
                                     Frozen pydantic configs (tagged union)
    QueryOptions / QueryResult (types.py)
                                     Uniform query contract

Guardrails:
    ❌ ``adapter.query("SELECT * FROM sales WHERE branch = '" + branch + "'")``
    ✅ ``adapter.query("SELECT * FROM sales WHERE branch = $1", [branch])``
    ❌ ``ClickHouseAdapter(...)`` inside report code
    ✅ ``await get_database(DatabaseType.CLICKHOUSE)``

Tags:
    branchdb, database, adapters, clickhouse, postgresql, asyncio

Doc-Types:
    package-overview, architecture-map, module-index
"""

from .base import DatabaseAdapter
from .clickhouse import ClickHouseAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, create_adapter
from .types import (
    ClickHouseConfig,
    DatabaseConfig,
    DatabaseType,
    PostgreSQLConfig,
    QueryOptions,
    QueryResult,
    parse_database_config,
)

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    "ClickHouseConfig",
    "PostgreSQLConfig",
    "QueryOptions",
    "QueryResult",
    "parse_database_config",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "ClickHouseAdapter",
    "PostgreSQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "create_adapter",
]
