"""branchdb core -- the database connection layer.

Manifesto:
    Every report in the dashboard reads branch data from ClickHouse or
    PostgreSQL.  ``branchdb.core`` gives them one async adapter interface,
    one environment-driven configuration and one connection manager that
    initializes lazily, survives an unreachable store and reconnects on
    demand.

Architecture::

    Layer 1 -- Errors, logging, settings
        errors.py          BranchDBError hierarchy (ConfigError, QueryError, ...)
        logging.py         structlog configuration, get_logger()
        settings.py        BranchDBSettings (pydantic-settings)

    Layer 2 -- Configuration
        config/loader.py     .env cascade
        config/databases.py  load_database_config() -> LoadedDatabaseConfig
        config/catalog.py    DB<n>_* branch catalog

    Layer 3 -- Adapters
        adapters/          DatabaseAdapter, ClickHouse, PostgreSQL, registry

    Layer 4 -- Services
        manager.py         ConnectionManager + get_database() API
        schema_cache.py    SchemaCache
        health.py          health models, checks and router factory

Tags:
    branchdb, core, database, package-overview

Doc-Types:
    package-overview, architecture-map
"""

from branchdb.core.errors import (
    BranchDBError,
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseUnavailableError,
    InvalidConfigError,
    MissingConfigError,
    NotConnectedError,
    QueryError,
)
from branchdb.core.adapters import (
    ClickHouseConfig,
    DatabaseAdapter,
    DatabaseType,
    PostgreSQLConfig,
    QueryOptions,
    QueryResult,
)
from branchdb.core.manager import (
    ConnectionManager,
    check_database_health,
    close_databases,
    get_available_databases,
    get_database,
    get_manager,
    get_primary_database,
    get_secondary_database,
    install_manager,
    is_database_available,
)

__all__ = [
    # Errors
    "BranchDBError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "DatabaseUnavailableError",
    "DatabaseConnectionError",
    "DatabaseError",
    "NotConnectedError",
    "QueryError",
    # Adapters
    "DatabaseType",
    "ClickHouseConfig",
    "PostgreSQLConfig",
    "QueryOptions",
    "QueryResult",
    "DatabaseAdapter",
    # Manager
    "ConnectionManager",
    "install_manager",
    "get_manager",
    "get_database",
    "get_primary_database",
    "get_secondary_database",
    "is_database_available",
    "get_available_databases",
    "close_databases",
    "check_database_health",
]
