"""Tests for ``branchdb.core.config.catalog``: numbered branch databases."""

from __future__ import annotations

import pytest

from branchdb.core.adapters.types import DatabaseType
from branchdb.core.config.catalog import (
    get_all_databases_info,
    get_default_database_key,
    list_database_keys,
    load_database_info,
    loaded_config_for_key,
)
from branchdb.core.errors import InvalidConfigError, MissingConfigError

CATALOG = {
    "DB1_TYPE": "CLICKHOUSE",
    "DB1_NAME": "Bangkok HQ",
    "DB1_CLICKHOUSE_HOST": "https://ch-hq.example.com:8443",
    "DB2_TYPE": "postgres",
    "DB2_NAME": "Chiang Mai",
    "DB2_POSTGRES_HOST": "10.0.0.12",
    "DB2_POSTGRES_DB": "cnx",
    "DB10_TYPE": "CLICKHOUSE",
    "DB10_CLICKHOUSE_HOST": "ch-pkt.local",
}


class TestListDatabaseKeys:
    def test_sorted_numerically(self):
        assert list_database_keys(CATALOG) == ["DB1", "DB2", "DB10"]

    def test_ignores_other_variables(self):
        assert list_database_keys({"DB_PRIMARY": "CH", "DB1_NAME": "x", "XDB1_TYPE": "CH"}) == []


class TestLoadDatabaseInfo:
    def test_clickhouse_entry(self):
        info = load_database_info("DB1", CATALOG)
        assert info.name == "Bangkok HQ"
        assert info.db_type == DatabaseType.CLICKHOUSE
        assert info.config.host == "ch-hq.example.com"
        assert info.config.secure is True

    def test_postgres_entry_with_alias(self):
        info = load_database_info("DB2", CATALOG)
        assert info.db_type == DatabaseType.POSTGRESQL
        assert info.config.database == "cnx"

    def test_name_defaults_to_key(self):
        assert load_database_info("DB10", CATALOG).name == "DB10"

    def test_missing_type(self):
        with pytest.raises(MissingConfigError, match="Make sure DB7_TYPE is set"):
            load_database_info("DB7", CATALOG)

    def test_unsupported_type(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            load_database_info("DB1", {"DB1_TYPE": "oracle", "DB1_CLICKHOUSE_HOST": "x"})
        assert exc_info.value.key == "DB1_TYPE"

    def test_missing_host(self):
        with pytest.raises(MissingConfigError) as exc_info:
            load_database_info("DB3", {"DB3_TYPE": "POSTGRESQL"})
        assert exc_info.value.key == "DB3_POSTGRES_HOST"

    def test_summary_has_no_connection_details(self):
        summary = load_database_info("DB2", CATALOG).summary()
        assert summary == {"key": "DB2", "name": "Chiang Mai", "type": "POSTGRESQL"}


class TestCatalog:
    def test_get_all_skips_invalid_entries(self):
        env = dict(CATALOG, DB4_TYPE="POSTGRESQL")
        keys = [info.key for info in get_all_databases_info(env)]
        assert keys == ["DB1", "DB2", "DB10"]

    def test_default_key(self):
        assert get_default_database_key({}) == "DB1"
        assert get_default_database_key({"DEFAULT_DATABASE": "DB2"}) == "DB2"

    def test_loaded_config_for_key(self):
        loaded = loaded_config_for_key("DB2", CATALOG)
        assert loaded.types == [DatabaseType.POSTGRESQL]
        assert loaded.primary == DatabaseType.POSTGRESQL
        assert loaded.secondary is None
