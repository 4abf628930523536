"""
Multi-database catalog.

Branch databases are declared with numbered keys::

    DB1_TYPE=CLICKHOUSE
    DB1_NAME=Bangkok HQ
    DB1_CLICKHOUSE_HOST=https://ch-hq.example.com:8443
    DB2_TYPE=POSTGRESQL
    DB2_NAME=Chiang Mai
    DB2_POSTGRES_HOST=10.0.0.12
    DEFAULT_DATABASE=DB1

The catalog lists those keys, validates each entry into a
:class:`DatabaseInfo` and can turn one entry into a
:class:`~branchdb.core.config.databases.LoadedDatabaseConfig` so a
connection manager can be built for a single branch.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from branchdb.core.adapters.types import ClickHouseConfig, DatabaseType, PostgreSQLConfig
from branchdb.core.errors import ConfigError, InvalidConfigError, MissingConfigError
from branchdb.core.logging import get_logger

from .databases import (
    DEFAULT_DATABASE_KEY,
    LoadedDatabaseConfig,
    build_store_config,
    host_variable,
    read_store_fields,
)
from .loader import get_effective_env

logger = get_logger(__name__)

_KEY_RE = re.compile(r"^(DB(\d+))_TYPE$")


@dataclass(frozen=True)
class DatabaseInfo:
    """One catalog entry."""

    key: str
    name: str
    db_type: DatabaseType
    config: ClickHouseConfig | PostgreSQLConfig

    def summary(self) -> dict[str, str]:
        """Public fields only (no connection parameters)."""
        return {"key": self.key, "name": self.name, "type": self.db_type.value}


def list_database_keys(env: Mapping[str, str] | None = None) -> list[str]:
    """Keys with a ``DB<n>_TYPE`` variable, sorted by number."""
    env = get_effective_env() if env is None else env
    found: list[tuple[int, str]] = []
    for name in env:
        match = _KEY_RE.match(name)
        if match:
            found.append((int(match.group(2)), match.group(1)))
    return [key for _, key in sorted(found)]


def load_database_info(key: str, env: Mapping[str, str] | None = None) -> DatabaseInfo:
    """Validate one catalog entry.

    Raises:
        MissingConfigError: ``<key>_TYPE`` or the store host is missing
        InvalidConfigError: unsupported type or invalid store values
    """
    env = get_effective_env() if env is None else env
    type_var = f"{key}_TYPE"
    type_raw = env.get(type_var)
    if not type_raw:
        raise MissingConfigError(
            type_var,
            f"Database type not found for {key}. Make sure {type_var} is set",
        )
    try:
        db_type = DatabaseType.parse(type_raw)
    except InvalidConfigError as e:
        raise InvalidConfigError(type_var, type_raw, f"{e.message} for {key}") from e

    raw = read_store_fields(env, db_type, prefix=key)
    if "host" not in raw:
        raise MissingConfigError(host_variable(db_type, key))

    return DatabaseInfo(
        key=key,
        name=env.get(f"{key}_NAME") or key,
        db_type=db_type,
        config=build_store_config(db_type, raw, prefix=key),
    )


def get_all_databases_info(env: Mapping[str, str] | None = None) -> list[DatabaseInfo]:
    """Every valid catalog entry; invalid entries are logged and left out."""
    env = get_effective_env() if env is None else env
    infos: list[DatabaseInfo] = []
    for key in list_database_keys(env):
        try:
            infos.append(load_database_info(key, env))
        except ConfigError as e:
            logger.warning("catalog_entry_skipped", key=key, error=e.message)
    return infos


def get_default_database_key(env: Mapping[str, str] | None = None) -> str:
    env = get_effective_env() if env is None else env
    return env.get("DEFAULT_DATABASE") or DEFAULT_DATABASE_KEY


def loaded_config_for_key(key: str, env: Mapping[str, str] | None = None) -> LoadedDatabaseConfig:
    """A single-store configuration for one branch, with that store as primary."""
    info = load_database_info(key, env)
    return LoadedDatabaseConfig(configs={info.db_type: info.config}, primary=info.db_type)


__all__ = [
    "DatabaseInfo",
    "get_all_databases_info",
    "get_default_database_key",
    "list_database_keys",
    "load_database_info",
    "loaded_config_for_key",
]
