"""Connection manager: one adapter per configured store, lazily initialized.

Manifesto:
    Report code asks for "the primary database" or "the ClickHouse
    database" and gets a live adapter back.  It never constructs adapters,
    never reads environment variables and never has to recover a dropped
    connection by hand.

    Startup is partial-failure tolerant: an unreachable store is logged and
    left out, the rest of the stores keep serving.

Lifecycle::

    uninitialized ──initialize()──► initializing ──► initialized
          ▲                                                │
          └──────────────────── close_all() ◄──────────────┘

    Only one initialization is ever in flight.  The first caller stores the
    task; every caller (first and later) awaits that same task.

Features:
    - ``ConnectionManager`` with injected config loader and adapter registry
    - ``get_adapter()`` with liveness probe and reconnect-on-demand
    - ``DatabaseUnavailableError`` listing what *is* available
    - ``health_check()`` snapshot for readiness endpoints
    - Module-level API (``get_database()`` ...) over the installed manager

Examples:
    >>> manager = ConnectionManager()
    >>> await manager.initialize()
    >>> adapter = await manager.get_adapter()      # primary
    >>> result = await adapter.query("SELECT 1")
    >>> await manager.close_all()

Tags:
    branchdb, database, connection-manager, lifecycle, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from branchdb.core.adapters.base import DatabaseAdapter
from branchdb.core.adapters.registry import AdapterRegistry, adapter_registry
from branchdb.core.adapters.types import DatabaseType
from branchdb.core.config.databases import LoadedDatabaseConfig, load_database_config
from branchdb.core.errors import DatabaseUnavailableError
from branchdb.core.logging import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """
    Owns the ``DatabaseType → adapter`` map for one process.

    Construct one in the application's startup routine and pass it down
    (or :func:`install_manager` it for the module-level API).  Tests build
    isolated managers with their own loader and registry.

    Args:
        config_loader: Zero-argument callable returning a
            :class:`LoadedDatabaseConfig`. Defaults to
            :func:`load_database_config`.
        registry: Adapter registry used to build adapters. Defaults to the
            process-wide registry.
    """

    def __init__(
        self,
        config_loader: Callable[[], LoadedDatabaseConfig] = load_database_config,
        registry: AdapterRegistry | None = None,
    ):
        self._config_loader = config_loader
        self._registry = registry or adapter_registry
        self._adapters: dict[DatabaseType, DatabaseAdapter] = {}
        self._configured: list[DatabaseType] = []
        self._primary: DatabaseType | None = None
        self._secondary: DatabaseType | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._initialized = False

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def primary_type(self) -> DatabaseType | None:
        """Primary store type, ``None`` until initialized."""
        return self._primary

    @property
    def secondary_type(self) -> DatabaseType | None:
        return self._secondary

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Load configuration and connect every configured store.

        Safe to call concurrently: all callers await the same task.  A
        no-op once initialized.  Configuration errors propagate and leave
        the manager uninitialized so the next call tries again.
        """
        if self._initialized:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        task = self._init_task
        try:
            await asyncio.shield(task)
        except BaseException:
            if task.done() and (task.cancelled() or task.exception() is not None):
                if self._init_task is task:
                    self._init_task = None
            raise

    async def _initialize(self) -> None:
        loaded = self._config_loader()
        self._configured = loaded.types
        self._primary = loaded.primary
        self._secondary = loaded.secondary

        logger.info(
            "database_initialize_started",
            databases=[t.value for t in loaded.types],
            primary=loaded.primary.value,
            secondary=loaded.secondary.value if loaded.secondary else None,
        )

        for db_type, config in loaded:
            adapter = self._registry.create(config)
            try:
                await adapter.connect()
            except Exception as e:
                logger.error(
                    "database_connect_failed",
                    db_type=db_type.value,
                    host=config.host,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            self._adapters[db_type] = adapter
            logger.info("database_connected", db_type=db_type.value, host=config.host)

        self._initialized = True
        logger.info(
            "database_initialize_completed",
            available=[t.value for t in self._adapters],
        )

    async def close_all(self) -> None:
        """
        Disconnect every adapter and reset to uninitialized.

        Individual disconnect failures are logged; they never stop the
        other adapters from being released.
        """
        if self._init_task is not None and not self._init_task.done():
            try:
                await asyncio.shield(self._init_task)
            except Exception:
                logger.debug("database_initialize_aborted_before_close", exc_info=True)

        adapters = list(self._adapters.items())
        results = await asyncio.gather(
            *(adapter.disconnect() for _, adapter in adapters),
            return_exceptions=True,
        )
        for (db_type, _), result in zip(adapters, results):
            if isinstance(result, BaseException):
                logger.error(
                    "database_disconnect_failed",
                    db_type=db_type.value,
                    error=str(result),
                    error_type=type(result).__name__,
                )

        self._adapters.clear()
        self._configured = []
        self._primary = None
        self._secondary = None
        self._init_task = None
        self._initialized = False
        logger.info("database_connections_closed", count=len(adapters))

    # ── Access ───────────────────────────────────────────────────────────

    async def get_adapter(self, db_type: DatabaseType | str | None = None) -> DatabaseAdapter:
        """
        Return a live adapter for *db_type* (primary when omitted).

        Raises:
            DatabaseUnavailableError: the type was never configured or failed
                to connect during initialization
            DatabaseConnectionError: the adapter was dead and reconnecting
                failed
        """
        if not self._initialized:
            await self.initialize()

        resolved = self._primary if db_type is None else DatabaseType.parse(db_type)
        adapter = self._adapters.get(resolved) if resolved is not None else None
        if adapter is None:
            raise DatabaseUnavailableError(resolved, self.available_databases())

        if not await adapter.is_connected():
            logger.warning("database_reconnecting", db_type=resolved.value)
            await adapter.reconnect()
        return adapter

    async def get_primary_adapter(self) -> DatabaseAdapter:
        return await self.get_adapter()

    async def get_secondary_adapter(self) -> DatabaseAdapter | None:
        """Secondary adapter, or ``None`` when no secondary is configured."""
        if not self._initialized:
            await self.initialize()
        if self._secondary is None:
            return None
        return await self.get_adapter(self._secondary)

    def get_registered_adapter(self, db_type: DatabaseType | str) -> DatabaseAdapter:
        """Registered adapter without initialization or liveness probe."""
        resolved = DatabaseType.parse(db_type)
        try:
            return self._adapters[resolved]
        except KeyError:
            raise DatabaseUnavailableError(resolved, self.available_databases()) from None

    def is_available(self, db_type: DatabaseType | str) -> bool:
        """Whether an adapter is registered for *db_type* (no probe)."""
        return DatabaseType.parse(db_type) in self._adapters

    def available_databases(self) -> list[DatabaseType]:
        return list(self._adapters)

    def configured_databases(self) -> list[DatabaseType]:
        """Every type the loaded configuration named, connected or not."""
        return list(self._configured)

    async def health_check(self) -> dict[DatabaseType, bool]:
        """
        Fresh liveness probe of every configured store.

        Stores that failed to connect during initialization report ``False``.
        """
        adapters = list(self._adapters.items())
        results = await asyncio.gather(*(adapter.is_connected() for _, adapter in adapters))
        status = {db_type: False for db_type in self._configured}
        status.update({db_type: bool(ok) for (db_type, _), ok in zip(adapters, results)})
        return status

    def __repr__(self) -> str:
        state = "initialized" if self._initialized else "uninitialized"
        available = ", ".join(t.value for t in self._adapters) or "none"
        return f"ConnectionManager({state}, available=[{available}])"


# ── Installed manager ────────────────────────────────────────────────────

_manager: ConnectionManager | None = None


def install_manager(manager: ConnectionManager | None) -> None:
    """Install the manager used by the module-level API (``None`` uninstalls)."""
    global _manager
    _manager = manager


def get_manager() -> ConnectionManager:
    """Return the installed manager, creating a default one if none was installed."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


async def get_database(db_type: DatabaseType | str | None = None) -> DatabaseAdapter:
    return await get_manager().get_adapter(db_type)


async def get_primary_database() -> DatabaseAdapter:
    return await get_manager().get_primary_adapter()


async def get_secondary_database() -> DatabaseAdapter | None:
    return await get_manager().get_secondary_adapter()


def is_database_available(db_type: DatabaseType | str) -> bool:
    return get_manager().is_available(db_type)


def get_available_databases() -> list[DatabaseType]:
    return get_manager().available_databases()


async def close_databases() -> None:
    await get_manager().close_all()


async def check_database_health() -> dict[DatabaseType, bool]:
    return await get_manager().health_check()


__all__ = [
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
