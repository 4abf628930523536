"""
CLI utility helpers: output formatting and connection management.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from functools import partial
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from branchdb.core.adapters.types import DatabaseType
from branchdb.core.config.catalog import loaded_config_for_key
from branchdb.core.errors import BranchDBError
from branchdb.core.logging import bind_context
from branchdb.core.manager import ConnectionManager

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


def make_manager(branch: str | None = None) -> ConnectionManager:
    """Manager for the environment's stores, or for one catalog entry (``DB2``)."""
    if branch:
        return ConnectionManager(config_loader=partial(loaded_config_for_key, branch.upper()))
    return ConnectionManager()


def run_with_manager(
    fn: Callable[[ConnectionManager], Awaitable[T]],
    *,
    branch: str | None = None,
) -> T:
    """Run ``fn(manager)`` on a fresh event loop and close the manager afterwards.

    Library errors are printed and turned into exit code 1.
    """

    async def _main() -> T:
        if branch:
            bind_context(branch=branch.upper())
        manager = make_manager(branch)
        try:
            return await fn(manager)
        finally:
            await manager.close_all()

    try:
        return asyncio.run(_main())
    except BranchDBError as e:
        fail(e)


def parse_database_option(value: str | None) -> DatabaseType | None:
    """``--database`` value to a ``DatabaseType`` (``None`` means primary)."""
    if not value:
        return None
    try:
        return DatabaseType.parse(value)
    except BranchDBError as e:
        fail(e)


def fail(error: BranchDBError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a list of rows or a single record to the terminal."""
    if as_json:
        if isinstance(data, list | tuple):
            payload: Any = [_to_dict(d) if not isinstance(d, list) else d for d in data]
        else:
            payload = _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No rows.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "", columns: list[str] | None = None) -> None:
    """Render a list of dicts (or plain row lists with *columns*) as a Rich table."""
    if columns is None:
        columns = list(_to_dict(items[0]))
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for item in items:
        values = item if isinstance(item, list | tuple) else _to_dict(item).values()
        table.add_row(*(str(v) for v in values))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
