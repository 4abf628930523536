"""
Structured logging for branchdb.

Every module logs through structlog with event-style messages and keyword
context::

    logger = get_logger(__name__)
    logger.info("database_connected", db_type="CLICKHOUSE", host="ch-1")

Configuration Flow:
    ::

        configure_logging(level="INFO", json_format=None, service="branchdb")
            ↓
        processor chain:
          1. TimeStamper (iso)
          2. add_log_level
          3. add_service_metadata
          4. redact_secrets
          5. elasticsearch_compatible (JSON only)
          6. JSONRenderer (non-tty) or ConsoleRenderer (tty)

Guardrails:
    - Connection passwords never reach a log line (``redact_secrets``)
    - Auto-detects JSON vs console based on TTY

Tags:
    logging, structlog, observability, json-logging, branchdb

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "branchdb"

# Keys whose values are replaced before rendering.
SECRET_KEYS = frozenset({"password", "passwd", "secret", "token", "dsn"})
REDACTED = "***"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp ``service.name`` on every event."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace secret-looking values (top level and one dict level down)."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if str(k).lower() in SECRET_KEYS and v else v)
                for k, v in value.items()
            }
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename ``timestamp``/``level`` to their ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "branchdb",
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        stream: Output stream (stdout when omitted; the CLI uses stderr).
            Loggers are not cached when a stream is given, so a later
            call with a different stream takes effect for module-level
            loggers that were already used.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
        redact_secrets,
    ]

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=stream is None,
    )

    # asyncpg and clickhouse-connect log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is bound lazily as ``logger_name`` so loggers created at import
    time still pick up the configuration applied later.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)


def bind_context(**kwargs: Any) -> None:
    """Add fields (``branch``, ``request_id``) to every log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with :func:`bind_context`."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "redact_secrets",
]
