"""Tests for ``branchdb.core.manager``: lifecycle, access and partial failure."""

from __future__ import annotations

import asyncio

import pytest

from branchdb.core import manager as manager_module
from branchdb.core.adapters.types import DatabaseType
from branchdb.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseUnavailableError,
    MissingConfigError,
)
from branchdb.core.manager import ConnectionManager
from tests._support.fakes import FakeStore, build_manager

CH = DatabaseType.CLICKHOUSE
PG = DatabaseType.POSTGRESQL


class TestInitialize:
    @pytest.mark.asyncio
    async def test_connects_every_configured_store(self, manager, stores):
        await manager.initialize()
        assert manager.initialized is True
        assert manager.available_databases() == [CH, PG]
        assert stores[CH].clients_created == 1
        assert stores[PG].clients_created == 1

    @pytest.mark.asyncio
    async def test_availability_mirrors_connect_success(self, stores):
        stores[CH].reachable = False
        manager = build_manager(stores, primary=PG)
        await manager.initialize()
        assert manager.is_available(CH) is False
        assert manager.is_available(PG) is True
        assert manager.initialized is True

    @pytest.mark.asyncio
    async def test_all_stores_unreachable_still_initializes(self, stores):
        for store in stores.values():
            store.reachable = False
        manager = build_manager(stores)
        await manager.initialize()
        assert manager.initialized is True
        assert manager.available_databases() == []

    @pytest.mark.asyncio
    async def test_initialize_twice_is_noop(self, manager, stores):
        await manager.initialize()
        await manager.initialize()
        assert stores[CH].connect_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_initialization(self, stores):
        stores[CH].connect_delay = 0.05
        manager = build_manager(stores)
        await asyncio.gather(*(manager.initialize() for _ in range(5)))
        assert stores[CH].clients_created == 1
        assert stores[PG].clients_created == 1

    @pytest.mark.asyncio
    async def test_concurrent_get_adapter_shares_one_initialization(self, stores):
        stores[CH].connect_delay = 0.05
        manager = build_manager(stores)
        adapters = await asyncio.gather(*(manager.get_adapter() for _ in range(5)))
        assert len({id(a) for a in adapters}) == 1
        assert stores[CH].clients_created == 1

    @pytest.mark.asyncio
    async def test_stores_connected_in_configuration_order(self, stores):
        order: list[DatabaseType] = []
        manager = build_manager(stores)
        original = manager._registry.create

        def recording_create(config):
            order.append(config.db_type)
            return original(config)

        manager._registry.create = recording_create
        await manager.initialize()
        assert order == [CH, PG]

    @pytest.mark.asyncio
    async def test_config_error_propagates_and_next_call_retries(self, stores):
        calls = {"n": 0}
        good = build_manager(stores)._config_loader

        def flaky_loader():
            calls["n"] += 1
            if calls["n"] == 1:
                raise MissingConfigError("CLICKHOUSE_HOST")
            return good()

        manager = build_manager(stores)
        manager._config_loader = flaky_loader

        with pytest.raises(MissingConfigError):
            await manager.initialize()
        assert manager.initialized is False

        await manager.initialize()
        assert manager.initialized is True
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_initialization(self, stores):
        stores[CH].connect_delay = 0.05
        manager = build_manager(stores)

        first = asyncio.ensure_future(manager.initialize())
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        await manager.initialize()
        assert stores[CH].clients_created == 1


class TestGetAdapter:
    @pytest.mark.asyncio
    async def test_lazily_initializes(self, manager):
        assert manager.initialized is False
        adapter = await manager.get_adapter(CH)
        assert manager.initialized is True
        assert adapter.db_type == CH

    @pytest.mark.asyncio
    async def test_no_argument_returns_primary(self, manager):
        default = await manager.get_adapter()
        primary = await manager.get_adapter(manager.primary_type)
        assert default is primary
        assert default.db_type == CH

    @pytest.mark.asyncio
    async def test_accepts_type_names(self, manager):
        adapter = await manager.get_adapter("postgres")
        assert adapter.db_type == PG

    @pytest.mark.asyncio
    async def test_unconfigured_type_lists_available(self, stores):
        manager = build_manager({CH: stores[CH]})
        with pytest.raises(DatabaseUnavailableError) as exc_info:
            await manager.get_adapter(PG)
        assert "CLICKHOUSE" in str(exc_info.value)
        assert exc_info.value.available == [CH]
        assert isinstance(exc_info.value, ConfigError)

    @pytest.mark.asyncio
    async def test_failed_store_lists_none_available(self, stores):
        stores[CH].reachable = False
        manager = build_manager({CH: stores[CH]})
        with pytest.raises(DatabaseUnavailableError, match="Available databases: none"):
            await manager.get_adapter()

    @pytest.mark.asyncio
    async def test_reconnects_dead_adapter(self, manager, stores):
        adapter = await manager.get_adapter(CH)
        stores[CH].alive = False

        again = await manager.get_adapter(CH)
        assert again is adapter
        assert stores[CH].clients_created == 2
        assert await again.is_connected() is True

    @pytest.mark.asyncio
    async def test_reconnect_failure_propagates(self, manager, stores):
        await manager.get_adapter(CH)
        stores[CH].alive = False
        stores[CH].reachable = False
        with pytest.raises(DatabaseConnectionError):
            await manager.get_adapter(CH)

    @pytest.mark.asyncio
    async def test_live_adapter_is_not_reconnected(self, manager, stores):
        await manager.get_adapter(CH)
        await manager.get_adapter(CH)
        assert stores[CH].clients_created == 1
        assert stores[CH].disconnect_calls == 0


class TestPrimarySecondary:
    @pytest.mark.asyncio
    async def test_secondary_adapter(self, manager):
        secondary = await manager.get_secondary_adapter()
        assert secondary is not None
        assert secondary.db_type == PG

    @pytest.mark.asyncio
    async def test_clickhouse_only(self, stores):
        manager = build_manager({CH: stores[CH]})
        assert await manager.get_secondary_adapter() is None
        primary = await manager.get_primary_adapter()
        assert primary.db_type == CH
        assert manager.is_available(PG) is False

    @pytest.mark.asyncio
    async def test_unreachable_clickhouse_postgres_primary(self, stores):
        stores[CH].reachable = False
        manager = build_manager(stores, primary=PG)
        await manager.initialize()
        adapter = await manager.get_adapter()
        assert adapter.db_type == PG
        assert manager.primary_type == PG
        assert await manager.health_check() == {CH: False, PG: True}


class TestIntrospection:
    def test_before_initialize(self, manager):
        assert manager.available_databases() == []
        assert manager.configured_databases() == []
        assert manager.is_available(CH) is False
        assert manager.primary_type is None

    @pytest.mark.asyncio
    async def test_configured_includes_failed_stores(self, stores):
        stores[CH].reachable = False
        manager = build_manager(stores, primary=PG)
        await manager.initialize()
        assert manager.configured_databases() == [CH, PG]
        assert manager.available_databases() == [PG]

    @pytest.mark.asyncio
    async def test_is_available_does_not_probe(self, manager, stores):
        await manager.initialize()
        stores[CH].alive = False
        assert manager.is_available(CH) is True

    @pytest.mark.asyncio
    async def test_health_check_probes(self, manager, stores):
        await manager.initialize()
        stores[PG].alive = False
        assert await manager.health_check() == {CH: True, PG: False}

    @pytest.mark.asyncio
    async def test_get_registered_adapter(self, manager):
        await manager.initialize()
        assert manager.get_registered_adapter(PG).db_type == PG

    def test_get_registered_adapter_missing(self, manager):
        with pytest.raises(DatabaseUnavailableError):
            manager.get_registered_adapter(CH)

    def test_repr(self, manager):
        assert "uninitialized" in repr(manager)


class TestCloseAll:
    @pytest.mark.asyncio
    async def test_resets_state(self, manager, stores):
        await manager.initialize()
        await manager.close_all()
        assert manager.available_databases() == []
        assert manager.initialized is False
        assert manager.primary_type is None
        assert stores[CH].disconnect_calls == 1
        assert stores[PG].disconnect_calls == 1

    @pytest.mark.asyncio
    async def test_reinitializes_on_next_access(self, manager, stores):
        await manager.initialize()
        await manager.close_all()

        adapter = await manager.get_adapter(PG)
        assert adapter.db_type == PG
        assert manager.initialized is True
        assert stores[PG].clients_created == 2

    @pytest.mark.asyncio
    async def test_disconnect_failure_does_not_block_others(self, manager, stores):
        await manager.initialize()
        stores[CH].disconnect_error = RuntimeError("stuck")
        await manager.close_all()
        assert stores[PG].disconnect_calls == 1
        assert manager.available_databases() == []

    @pytest.mark.asyncio
    async def test_close_before_initialize(self, manager):
        await manager.close_all()
        assert manager.initialized is False


class TestModuleLevelApi:
    @pytest.mark.asyncio
    async def test_functions_use_installed_manager(self, manager):
        manager_module.install_manager(manager)

        primary = await manager_module.get_primary_database()
        assert primary.db_type == CH
        assert (await manager_module.get_database(PG)).db_type == PG
        assert (await manager_module.get_secondary_database()).db_type == PG
        assert manager_module.is_database_available(CH) is True
        assert manager_module.get_available_databases() == [CH, PG]
        assert await manager_module.check_database_health() == {CH: True, PG: True}

        await manager_module.close_databases()
        assert manager_module.get_available_databases() == []

    @pytest.mark.asyncio
    async def test_clickhouse_only_scenario(self, stores):
        manager_module.install_manager(build_manager({CH: stores[CH]}))
        assert await manager_module.get_secondary_database() is None
        assert (await manager_module.get_primary_database()).db_type == CH
        assert manager_module.is_database_available(PG) is False

    def test_get_manager_builds_default(self):
        created = manager_module.get_manager()
        assert isinstance(created, ConnectionManager)
        assert manager_module.get_manager() is created

    def test_install_replaces(self, manager):
        manager_module.install_manager(manager)
        assert manager_module.get_manager() is manager


class TestQueriesThroughManager:
    @pytest.mark.asyncio
    async def test_query_returns_uniform_result(self, manager, stores):
        stores[CH].rows = [{"branch": "BKK", "total": 10}, {"branch": "CNX", "total": 4}]
        adapter = await manager.get_adapter(CH)
        result = await adapter.query("SELECT branch, total FROM sales")
        assert result.rows == 2
        assert result.data[0]["branch"] == "BKK"
        assert result.meta == {"columns": ["branch", "total"]}

    @pytest.mark.asyncio
    async def test_isolated_managers(self):
        a = build_manager({CH: FakeStore()})
        b = build_manager({PG: FakeStore()})
        await a.initialize()
        await b.initialize()
        assert a.available_databases() == [CH]
        assert b.available_databases() == [PG]
