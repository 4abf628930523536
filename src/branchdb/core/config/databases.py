"""
Database configuration loader.

Turns the environment into a :class:`LoadedDatabaseConfig`: which stores are
configured (in initialization order), which one is primary and which one,
if any, is secondary.

Environment variables
---------------------
==============================  =====================================
Variable                        Meaning
==============================  =====================================
``DB_PRIMARY``                  Primary type (default: first configured)
``DB_SECONDARY``                Optional secondary type
``DEFAULT_DATABASE``            Fallback prefix, default ``DB1``
``CLICKHOUSE_HOST``             Hostname or URL; enables ClickHouse
``CLICKHOUSE_PORT``             Port (library default when unset)
``CLICKHOUSE_USER``             Username
``CLICKHOUSE_PASSWORD``         Password
``CLICKHOUSE_DB``               Database name
``CLICKHOUSE_SECURE``           TLS flag
``POSTGRES_HOST``               Hostname; enables PostgreSQL
``POSTGRES_PORT``               Port, default 5432
``POSTGRES_USER``               Username
``POSTGRES_PASSWORD``           Password
``POSTGRES_DB``                 Database name
``POSTGRES_SSL``                TLS flag
``POSTGRES_MAX_CONNECTIONS``    Pool size, default 10
``POSTGRES_MIN_CONNECTIONS``    Pool floor, default 1
==============================  =====================================

Every per-store variable falls back to ``<DEFAULT_DATABASE>_<NAME>``
(``DB1_CLICKHOUSE_HOST`` and so on) when the bare name is unset.

Validation fails fast for the *selected* stores (primary/secondary): a
missing host or an invalid value raises here, at load time.  A store that is
configured but invalid and not selected is skipped and logged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import ValidationError

from branchdb.core.adapters.types import (
    ClickHouseConfig,
    DatabaseType,
    PostgreSQLConfig,
    parse_database_config,
)
from branchdb.core.errors import InvalidConfigError, MissingConfigError
from branchdb.core.logging import get_logger

from .loader import get_effective_env

logger = get_logger(__name__)

DEFAULT_DATABASE_KEY = "DB1"

# config field -> environment variable, per store
STORE_FIELDS: dict[DatabaseType, dict[str, str]] = {
    DatabaseType.CLICKHOUSE: {
        "host": "CLICKHOUSE_HOST",
        "port": "CLICKHOUSE_PORT",
        "username": "CLICKHOUSE_USER",
        "password": "CLICKHOUSE_PASSWORD",
        "database": "CLICKHOUSE_DB",
        "secure": "CLICKHOUSE_SECURE",
    },
    DatabaseType.POSTGRESQL: {
        "host": "POSTGRES_HOST",
        "port": "POSTGRES_PORT",
        "username": "POSTGRES_USER",
        "password": "POSTGRES_PASSWORD",
        "database": "POSTGRES_DB",
        "ssl": "POSTGRES_SSL",
        "max_connections": "POSTGRES_MAX_CONNECTIONS",
        "min_connections": "POSTGRES_MIN_CONNECTIONS",
    },
}


@dataclass(frozen=True)
class LoadedDatabaseConfig:
    """Result of :func:`load_database_config`."""

    configs: dict[DatabaseType, ClickHouseConfig | PostgreSQLConfig]
    primary: DatabaseType
    secondary: DatabaseType | None = None
    skipped: dict[DatabaseType, str] = field(default_factory=dict)

    def __iter__(self):
        return iter(self.configs.items())

    @property
    def types(self) -> list[DatabaseType]:
        return list(self.configs)


def host_variable(db_type: DatabaseType, prefix: str | None = None) -> str:
    name = STORE_FIELDS[db_type]["host"]
    return f"{prefix}_{name}" if prefix else name


def read_store_fields(
    env: Mapping[str, str],
    db_type: DatabaseType,
    *,
    prefix: str | None = None,
    fallback_prefix: str | None = None,
) -> dict[str, str]:
    """Collect the raw (string) values set for one store.

    With *prefix*, only ``<prefix>_<NAME>`` is read.  Otherwise ``<NAME>`` is
    read first and ``<fallback_prefix>_<NAME>`` second.  Empty values count
    as unset.
    """
    raw: dict[str, str] = {}
    for field_name, var in STORE_FIELDS[db_type].items():
        if prefix:
            value = env.get(f"{prefix}_{var}")
        else:
            value = env.get(var)
            if not value and fallback_prefix:
                value = env.get(f"{fallback_prefix}_{var}")
        if value:
            raw[field_name] = value
    return raw


def build_store_config(
    db_type: DatabaseType,
    raw: Mapping[str, str],
    *,
    prefix: str | None = None,
) -> ClickHouseConfig | PostgreSQLConfig:
    """Validate raw values into the store's config model.

    Raises ``InvalidConfigError`` naming the offending environment variable.
    """
    try:
        return parse_database_config({"db_type": db_type, **raw})
    except ValidationError as e:
        first = e.errors()[0]
        fields = STORE_FIELDS[db_type]
        located = [str(part) for part in first["loc"] if str(part) in fields]
        field_name = located[-1] if located else None
        var = fields[field_name] if field_name else f"{db_type.value}_CONFIG"
        if prefix:
            var = f"{prefix}_{var}"
        value = raw.get(field_name) if field_name and field_name != "password" else None
        raise InvalidConfigError(
            var,
            value,
            f"Invalid {db_type.value} configuration for {var}: {first['msg']}",
        ) from e


def _selector(env: Mapping[str, str], name: str) -> DatabaseType | None:
    value = env.get(name)
    if not value:
        return None
    try:
        return DatabaseType.parse(value)
    except InvalidConfigError as e:
        raise InvalidConfigError(name, value, f"{name}: {e.message}") from e


def load_database_config(env: Mapping[str, str] | None = None) -> LoadedDatabaseConfig:
    """
    Load the database configuration.

    Args:
        env: Environment mapping; defaults to ``.env`` files merged under
            the process environment.

    Raises:
        MissingConfigError: no store configured, or a selected store has no host
        InvalidConfigError: a selected store has invalid values, an unknown
            selector value, or secondary equals primary
    """
    env = get_effective_env() if env is None else env
    fallback_prefix = env.get("DEFAULT_DATABASE") or DEFAULT_DATABASE_KEY

    primary = _selector(env, "DB_PRIMARY")
    secondary = _selector(env, "DB_SECONDARY")
    selected = {t for t in (primary, secondary) if t is not None}

    configs: dict[DatabaseType, ClickHouseConfig | PostgreSQLConfig] = {}
    skipped: dict[DatabaseType, str] = {}

    for db_type in DatabaseType:
        raw = read_store_fields(env, db_type, fallback_prefix=fallback_prefix)
        if "host" not in raw:
            if db_type in selected:
                role = "primary" if db_type == primary else "secondary"
                raise MissingConfigError(
                    host_variable(db_type),
                    f"{db_type.value} is selected as {role} database but "
                    f"{host_variable(db_type)} is not set",
                )
            continue
        try:
            configs[db_type] = build_store_config(db_type, raw)
        except InvalidConfigError as e:
            if db_type in selected:
                raise
            logger.warning("database_config_skipped", db_type=db_type.value, error=e.message)
            skipped[db_type] = e.message

    if not configs:
        raise MissingConfigError(
            "CLICKHOUSE_HOST",
            "No database configured: set CLICKHOUSE_HOST and/or POSTGRES_HOST",
        )

    if primary is None:
        primary = next((t for t in configs if t != secondary), next(iter(configs)))

    if secondary is not None and secondary == primary:
        raise InvalidConfigError(
            "DB_SECONDARY",
            secondary.value,
            "DB_SECONDARY must differ from the primary database",
        )

    return LoadedDatabaseConfig(
        configs=configs,
        primary=primary,
        secondary=secondary,
        skipped=skipped,
    )


__all__ = [
    "DEFAULT_DATABASE_KEY",
    "LoadedDatabaseConfig",
    "STORE_FIELDS",
    "build_store_config",
    "host_variable",
    "load_database_config",
    "read_store_fields",
]
