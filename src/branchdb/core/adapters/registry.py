"""Database adapter registry and factory.

Manifesto:
    The connection manager should never hard-code adapter class names.  The
    registry maps ``DatabaseType`` to adapter classes and ``create_adapter()``
    builds a (disconnected) adapter from a validated config.

Features:
    - ``AdapterRegistry`` with pre-registered ClickHouse and PostgreSQL
    - ``register()`` for custom adapters (and test doubles)
    - ``create_adapter()`` factory: config → adapter

Tags:
    branchdb, database, registry, factory

Doc-Types:
    api-reference
"""

from __future__ import annotations

from branchdb.core.errors import ConfigError

from .base import DatabaseAdapter
from .clickhouse import ClickHouseAdapter
from .postgresql import PostgreSQLAdapter
from .types import ClickHouseConfig, DatabaseType, PostgreSQLConfig


class AdapterRegistry:
    """
    Registry for database adapter classes.

    Pre-registered adapters:
    - ``CLICKHOUSE``: :class:`ClickHouseAdapter`
    - ``POSTGRESQL``: :class:`PostgreSQLAdapter`
    """

    def __init__(self, *, register_defaults: bool = True):
        self._factories: dict[DatabaseType, type[DatabaseAdapter]] = {}
        if register_defaults:
            self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories[DatabaseType.CLICKHOUSE] = ClickHouseAdapter
        self._factories[DatabaseType.POSTGRESQL] = PostgreSQLAdapter

    def register(self, db_type: DatabaseType | str, adapter_class: type[DatabaseAdapter]) -> None:
        """Register (or replace) the adapter class for a type."""
        self._factories[DatabaseType.parse(db_type)] = adapter_class

    def get(self, db_type: DatabaseType | str) -> type[DatabaseAdapter]:
        resolved = DatabaseType.parse(db_type)
        if resolved not in self._factories:
            raise ConfigError(f"No adapter registered for database type: {resolved.value}")
        return self._factories[resolved]

    def create(self, config: ClickHouseConfig | PostgreSQLConfig) -> DatabaseAdapter:
        """Build a disconnected adapter for ``config.db_type``."""
        return self.get(config.db_type)(config)

    def list_adapters(self) -> list[DatabaseType]:
        return sorted(self._factories, key=lambda t: t.value)


# Global registry
adapter_registry = AdapterRegistry()


def create_adapter(
    config: ClickHouseConfig | PostgreSQLConfig,
    registry: AdapterRegistry | None = None,
) -> DatabaseAdapter:
    """
    Build an adapter for a config.

    Usage:
        adapter = create_adapter(PostgreSQLConfig(host="localhost", database="erp"))
        await adapter.connect()
    """
    return (registry or adapter_registry).create(config)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "create_adapter",
]
