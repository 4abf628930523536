"""Health probes for branchdb services.

Provides:

- **Response models**: ``HealthResponse``, ``CheckResult``, ``LivenessResponse``
  used as the JSON envelope of ``GET /health``.
- **``HealthCheck``**: one named async probe with ``required`` / ``timeout_s``.
- **``database_health_checks()``**: one check per configured store of a
  ``ConnectionManager`` (the primary store is required, the others are not).
- **``create_health_router()``**: ``/health``, ``/health/ready`` and
  ``/health/live`` for container orchestrators.

Status rules: any failed required check → ``unhealthy`` (503); only
optional checks failed → ``degraded`` (200 on ``/health``, 503 on
``/health/ready``).

Quick start::

    from branchdb.core.health import create_health_router, database_health_checks

    router = create_health_router(
        service_name="branchdb",
        version="0.1.0",
        checks=lambda: database_health_checks(manager),
    )
    app.include_router(router)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from branchdb.core.adapters.base import DatabaseAdapter
from branchdb.core.adapters.types import DatabaseType
from branchdb.core.errors import DatabaseConnectionError, DatabaseUnavailableError
from branchdb.core.manager import ConnectionManager

Status = Literal["healthy", "degraded", "unhealthy"]

# Process start, for uptime reporting.
_STARTED_AT = time.monotonic()

# Longest error text kept in a check result.
MAX_ERROR_CHARS = 200


def _uptime() -> float:
    return round(time.monotonic() - _STARTED_AT, 1)


def _now() -> str:
    return datetime.now(UTC).isoformat()


# ── Response Models ──────────────────────────────────────────────────────


class CheckResult(BaseModel):
    """Outcome of one probe."""

    status: Status
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Body of ``GET /health`` and ``GET /health/ready``.

    Fields
    ──────
    status    : aggregate of ``checks``
    service   : service name from settings
    version   : API version
    uptime_s  : seconds since the process imported this module
    timestamp : ISO-8601 UTC
    checks    : probe name → CheckResult
    """

    status: Status = "healthy"
    service: str = ""
    version: str = ""
    uptime_s: float = Field(default_factory=_uptime)
    timestamp: str = Field(default_factory=_now)
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    """Body of ``GET /health/live``: always ``{"status": "alive"}``."""

    status: str = "alive"


# ── Checks ───────────────────────────────────────────────────────────────


@dataclass
class HealthCheck:
    """
    One named probe.

    Parameters
    ----------
    name : str
        Key in ``HealthResponse.checks`` (``"clickhouse"``, ``"postgresql"``).
    check_fn : () -> Awaitable[bool]
        Resolves on success; raising (or exceeding ``timeout_s``) is failure.
    required : bool
        Failure of a required probe makes the service ``unhealthy``; of an
        optional one, ``degraded``.
    timeout_s : float
        Seconds before the probe counts as failed.
    """

    name: str
    check_fn: Callable[[], Awaitable[bool]]
    required: bool = True
    timeout_s: float = 5.0

    async def run(self) -> CheckResult:
        started = time.monotonic()
        try:
            await asyncio.wait_for(self.check_fn(), timeout=self.timeout_s)
        except TimeoutError:
            return CheckResult(status="unhealthy", error="timeout")
        except Exception as exc:  # noqa: BLE001
            return CheckResult(
                status="unhealthy",
                latency_ms=_elapsed_ms(started),
                error=str(exc)[:MAX_ERROR_CHARS],
            )
        return CheckResult(status="healthy", latency_ms=_elapsed_ms(started))


CheckProvider = list[HealthCheck] | Callable[[], list[HealthCheck]]


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def _adapter_probe(adapter: DatabaseAdapter) -> Callable[[], Awaitable[bool]]:
    async def probe() -> bool:
        if not await adapter.is_connected():
            raise DatabaseConnectionError(f"{adapter.db_type.value} is not reachable")
        return True

    return probe


def _unavailable(
    db_type: DatabaseType, available: list[DatabaseType]
) -> Callable[[], Awaitable[bool]]:
    async def probe() -> bool:
        raise DatabaseUnavailableError(db_type, available)

    return probe


def database_health_checks(manager: ConnectionManager) -> list[HealthCheck]:
    """One check per configured store; the primary store is required.

    A store that failed to connect during initialization is reported as a
    failing check rather than left out.
    """
    checks: list[HealthCheck] = []
    primary = manager.primary_type
    available = manager.available_databases()

    for db_type in manager.configured_databases():
        if db_type in available:
            check_fn = _adapter_probe(manager.get_registered_adapter(db_type))
        else:
            check_fn = _unavailable(db_type, available)
        checks.append(
            HealthCheck(
                name=db_type.value.lower(),
                check_fn=check_fn,
                required=db_type == primary,
            )
        )
    return checks


async def evaluate(checks: list[HealthCheck]) -> tuple[Status, dict[str, CheckResult]]:
    """Run *checks* concurrently and aggregate their status."""
    results = await asyncio.gather(*(check.run() for check in checks))
    by_name = {check.name: result for check, result in zip(checks, results)}

    failed = [check for check, result in zip(checks, results) if result.status != "healthy"]
    if any(check.required for check in failed):
        return "unhealthy", by_name
    if failed:
        return "degraded", by_name
    return "healthy", by_name


# ── Router Factory ───────────────────────────────────────────────────────


def create_health_router(
    service_name: str,
    version: str,
    checks: CheckProvider | None = None,
    prefix: str = "/health",
) -> APIRouter:
    """FastAPI router with the three health endpoints.

    *checks* may be a callable so the set of probes is rebuilt per request
    (the connected stores can change after startup).
    """
    router = APIRouter(tags=["health"])

    def current_checks() -> list[HealthCheck]:
        if checks is None:
            return []
        return checks() if callable(checks) else list(checks)

    async def respond(*, strict: bool) -> JSONResponse:
        status, results = await evaluate(current_checks())
        ok = status == "healthy" or (status == "degraded" and not strict)
        body = HealthResponse(
            status=status,
            service=service_name,
            version=version,
            checks=results,
        )
        return JSONResponse(content=body.model_dump(), status_code=200 if ok else 503)

    @router.get(prefix, response_model=HealthResponse)
    async def health() -> JSONResponse:
        """Run every probe; 503 only when a required one fails."""
        return await respond(strict=False)

    @router.get(f"{prefix}/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        """Readiness: 503 unless every probe passes."""
        return await respond(strict=True)

    @router.get(f"{prefix}/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse()

    return router


__all__ = [
    "CheckResult",
    "HealthCheck",
    "HealthResponse",
    "LivenessResponse",
    "create_health_router",
    "database_health_checks",
    "evaluate",
]
