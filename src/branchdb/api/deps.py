"""
FastAPI dependency injection: settings, the connection manager and the
schema cache.

Usage in routers::

    from branchdb.api.deps import Manager, Settings

    @router.get("/things")
    async def list_things(manager: Manager, settings: Settings):
        ...

Manifesto:
    The manager and schema cache are created by ``create_app()`` and live on
    ``app.state`` for the lifetime of the process; routers only ever reach
    them through these dependencies, so tests can inject isolated ones.

Tags:
    branchdb, api, dependency-injection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from branchdb.core.manager import ConnectionManager
from branchdb.core.schema_cache import SchemaCache
from branchdb.core.settings import BranchDBSettings
from branchdb.core.settings import get_settings as _load_settings

# ── Settings (singleton) ─────────────────────────────────────────────────


def get_settings() -> BranchDBSettings:
    """Cached settings; ``create_app()`` overrides this with its own."""
    return _load_settings()


# ── Application-owned services ───────────────────────────────────────────


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


def get_schema_cache(request: Request) -> SchemaCache:
    return request.app.state.schema_cache


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[BranchDBSettings, Depends(get_settings)]
Manager = Annotated[ConnectionManager, Depends(get_manager)]
Schema = Annotated[SchemaCache, Depends(get_schema_cache)]
