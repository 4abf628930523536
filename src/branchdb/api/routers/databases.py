"""
Databases router: catalog, connected stores and the schema cache.

GET  /databases
GET  /databases/available
GET  /schema
POST /schema/refresh

Manifesto:
    The dashboard's branch switcher lists the catalog; diagnostics pages
    show which stores the running process actually reached.  Neither ever
    exposes hosts or credentials.

Tags:
    branchdb, api, databases, schema

Doc-Types:
    api-reference
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from branchdb.api.deps import Manager, Schema
from branchdb.api.schemas import (
    AvailableDatabasesResponse,
    DatabaseSummary,
    SchemaRefreshResponse,
)
from branchdb.core.config.catalog import get_all_databases_info
from branchdb.core.logging import get_logger
from branchdb.core.schema_cache import SchemaCacheStatus

logger = get_logger(__name__)

router = APIRouter()


@router.get("/databases", response_model=list[DatabaseSummary])
async def list_databases() -> list[DatabaseSummary]:
    """Branch databases declared in the ``DB<n>_*`` catalog."""
    return [
        DatabaseSummary(key=info.key, name=info.name, type=info.db_type)
        for info in get_all_databases_info()
    ]


@router.get("/databases/available", response_model=AvailableDatabasesResponse)
async def available_databases(manager: Manager) -> AvailableDatabasesResponse:
    return AvailableDatabasesResponse(
        available=manager.available_databases(),
        primary=manager.primary_type,
        secondary=manager.secondary_type,
    )


@router.get("/schema", response_model=SchemaCacheStatus)
async def schema_status(schema: Schema) -> SchemaCacheStatus:
    """Schema cache status (does not trigger a load)."""
    return schema.status()


@router.post("/schema/refresh", response_model=SchemaRefreshResponse)
async def refresh_schema(schema: Schema) -> JSONResponse:
    """Drop and reload the schema cache; 500 when the reload fails."""
    result = await schema.refresh()
    if not result.success:
        logger.error("schema_refresh_failed", error=result.error)
        body = SchemaRefreshResponse(success=False, error=result.error)
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    logger.info("schema_refreshed", table_count=result.table_count)
    body = SchemaRefreshResponse(
        success=True,
        message="Schema refreshed successfully",
        table_count=result.table_count,
        last_updated=result.last_updated,
    )
    return JSONResponse(content=body.model_dump(mode="json"))
