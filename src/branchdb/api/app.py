"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and the
lifespan that owns the process's :class:`ConnectionManager`.

Manifesto:
    The app factory is the single composition root: the connection
    manager is constructed here, initialized at startup, installed for the
    module-level database API and closed at shutdown.  Nothing else in the
    process creates a manager.

Tags:
    branchdb, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from branchdb.api.deps import get_settings
from branchdb.api.middleware.errors import branchdb_exception_handler, unhandled_exception_handler
from branchdb.api.routers import databases
from branchdb.core.errors import BranchDBError
from branchdb.core.health import create_health_router, database_health_checks
from branchdb.core.logging import configure_logging, get_logger
from branchdb.core.manager import ConnectionManager, install_manager
from branchdb.core.schema_cache import SchemaCache
from branchdb.core.settings import BranchDBSettings

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: connect the stores, then release them."""
    settings: BranchDBSettings = app.state.settings
    manager: ConnectionManager = app.state.manager

    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        service=settings.service_name,
    )
    log.info("branchdb API starting", version=app.version)

    await manager.initialize()
    install_manager(manager)
    try:
        yield
    finally:
        log.info("branchdb API shutting down")
        await manager.close_all()
        install_manager(None)


def create_app(
    *,
    settings: BranchDBSettings | None = None,
    manager: ConnectionManager | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : BranchDBSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        settings from :func:`get_settings` are used.
    manager : ConnectionManager | None
        Connection manager to own.  A default one (environment config,
        default adapter registry) is built when ``None``.
    """
    settings = settings or get_settings()
    manager = manager or ConnectionManager()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.state.manager = manager
    app.state.schema_cache = SchemaCache(manager, settings.schema_database)

    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware ───────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(BranchDBError, branchdb_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    # Health endpoints at root level (no prefix) for container healthchecks
    app.include_router(
        create_health_router(
            settings.service_name,
            version=settings.api_version,
            checks=lambda: database_health_checks(manager),
        ),
    )
    app.include_router(databases.router, prefix=settings.api_prefix, tags=["databases"])

    return app
