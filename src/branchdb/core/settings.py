"""Application settings for branchdb.

Database connection parameters are read by :mod:`branchdb.core.config`
(they follow the dashboard's existing ``CLICKHOUSE_*`` / ``POSTGRES_*`` /
``DB<n>_*`` variable names).  Everything else the process needs (logging,
the HTTP transport, the schema cache target) lives here and is read from
``BRANCHDB_*`` variables or a ``.env`` file.

Examples:
    >>> settings = BranchDBSettings(log_level="DEBUG")
    >>> settings.api_prefix
    '/api'

Tags:
    settings, configuration, pydantic, environment, branchdb

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from branchdb.core.adapters.types import DatabaseType


class BranchDBSettings(BaseSettings):
    """Process-level settings.

    Fields
    ──────
    log_level      : structlog level
    log_format     : ``json`` | ``console`` | ``auto`` (JSON unless stdout is a tty)
    debug          : expose error details in HTTP responses
    api_*          : REST transport knobs
    schema_database: database type the schema cache describes (primary if unset)
    """

    model_config = SettingsConfigDict(
        env_prefix="BRANCHDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console", "auto"] = Field(default="auto")
    service_name: str = Field(default="branchdb")
    debug: bool = Field(default=False)

    # ── API ──────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api", description="URL prefix for data endpoints")
    api_title: str = Field(default="branchdb API")
    api_version: str = Field(default="0.1.0")
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    # ── Schema cache ─────────────────────────────────────────────
    schema_database: DatabaseType | None = Field(default=None)

    @property
    def json_logs(self) -> bool | None:
        """Translate ``log_format`` into ``configure_logging(json_format=...)``."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


@lru_cache(maxsize=1)
def get_settings() -> BranchDBSettings:
    """Cached settings, loaded once per process."""
    return BranchDBSettings()


__all__ = ["BranchDBSettings", "get_settings"]
