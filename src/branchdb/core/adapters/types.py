"""Database types, per-store configuration and the uniform query shapes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Generic, Literal, TypeVar, Union
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    TypeAdapter,
    model_validator,
)

from branchdb.core.errors import InvalidConfigError

T = TypeVar("T")


class DatabaseType(str, Enum):
    """Supported database types."""

    CLICKHOUSE = "CLICKHOUSE"
    POSTGRESQL = "POSTGRESQL"

    @classmethod
    def parse(cls, value: DatabaseType | str) -> DatabaseType:
        """Resolve a type from its name or a common alias, case-insensitively."""
        if isinstance(value, DatabaseType):
            return value
        normalized = value.strip().upper()
        resolved = _ALIASES.get(normalized)
        if resolved is None:
            raise InvalidConfigError(
                "database_type",
                value,
                f"Unsupported database type: {value!r} "
                f"(expected one of {', '.join(t.value for t in cls)})",
            )
        return resolved


_ALIASES: dict[str, DatabaseType] = {
    "CLICKHOUSE": DatabaseType.CLICKHOUSE,
    "CH": DatabaseType.CLICKHOUSE,
    "POSTGRESQL": DatabaseType.POSTGRESQL,
    "POSTGRES": DatabaseType.POSTGRESQL,
    "PG": DatabaseType.POSTGRESQL,
}


class _StoreConfig(BaseModel):
    """Shared model settings: immutable, strict about unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class ClickHouseConfig(_StoreConfig):
    """
    ClickHouse connection parameters.

    ``host`` may be given as a URL (``https://ch.example.com:8443``); the
    scheme and port are split out into ``secure`` and ``port``.
    """

    db_type: Literal[DatabaseType.CLICKHOUSE] = DatabaseType.CLICKHOUSE
    host: str = Field(min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str = "default"
    password: SecretStr = SecretStr("")
    database: str = "default"
    secure: bool = False

    @model_validator(mode="before")
    @classmethod
    def _split_url_host(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        host = data.get("host")
        if not isinstance(host, str) or "://" not in host:
            return data
        parts = urlsplit(host)
        data = dict(data)
        data["host"] = parts.hostname or ""
        if parts.port and data.get("port") is None:
            data["port"] = parts.port
        if "secure" not in data:
            data["secure"] = parts.scheme == "https"
        return data


class PostgreSQLConfig(_StoreConfig):
    """PostgreSQL connection and pool parameters."""

    db_type: Literal[DatabaseType.POSTGRESQL] = DatabaseType.POSTGRESQL
    host: str = Field(min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    username: str = ""
    password: SecretStr = SecretStr("")
    database: str = ""
    ssl: bool = False
    max_connections: int = Field(default=10, ge=1)
    min_connections: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> PostgreSQLConfig:
        if self.min_connections > self.max_connections:
            raise ValueError(
                f"min_connections ({self.min_connections}) exceeds "
                f"max_connections ({self.max_connections})"
            )
        return self


DatabaseConfig = Annotated[
    Union[ClickHouseConfig, PostgreSQLConfig],
    Field(discriminator="db_type"),
]

_config_adapter: TypeAdapter[DatabaseConfig] = TypeAdapter(DatabaseConfig)


def parse_database_config(data: Mapping[str, Any]) -> ClickHouseConfig | PostgreSQLConfig:
    """Validate a raw mapping into the matching config variant.

    Raises ``pydantic.ValidationError`` on invalid values.
    """
    return _config_adapter.validate_python(dict(data))


@dataclass(frozen=True)
class QueryOptions:
    """A query and how to run it."""

    query: str
    params: Sequence[Any] | Mapping[str, Any] | None = None
    format: str | None = None


@dataclass
class QueryResult(Generic[T]):
    """
    Uniform result returned by every adapter's ``query()``.

    ``data`` is always a list, ``rows`` always equals ``len(data)`` and
    ``meta`` carries ``{"columns": [...]}``.
    """

    data: list[T]
    rows: int
    meta: Any = None

    @classmethod
    def from_rows(cls, rows: Sequence[T], columns: Sequence[str] | None = None) -> QueryResult[T]:
        data = list(rows)
        meta = {"columns": list(columns)} if columns is not None else None
        return cls(data=data, rows=len(data), meta=meta)

    def first(self) -> T | None:
        return self.data[0] if self.data else None


__all__ = [
    "DatabaseType",
    "ClickHouseConfig",
    "PostgreSQLConfig",
    "DatabaseConfig",
    "parse_database_config",
    "QueryOptions",
    "QueryResult",
]
