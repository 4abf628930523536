"""
CLI: ``branchdb db``: catalog, connectivity and ad-hoc queries.
"""

from __future__ import annotations

import typer

from branchdb.cli.utils import (
    _print_table,
    console,
    output,
    parse_database_option,
    run_with_manager,
)
from branchdb.core.adapters.types import DatabaseType, QueryResult
from branchdb.core.manager import ConnectionManager

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_databases(
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List branch databases declared with DB<n>_* variables."""
    from branchdb.core.config.catalog import get_all_databases_info, get_default_database_key

    infos = get_all_databases_info()
    default = get_default_database_key()
    rows = [
        {**info.summary(), "default": info.key == default}
        for info in infos
    ]
    output(rows, as_json=json_out, title="Databases")


@app.command()
def health(
    branch: str | None = typer.Option(None, "--branch", "-b", help="Catalog key, e.g. DB2"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Connect to every configured store and probe it."""

    async def _check(manager: ConnectionManager) -> dict[DatabaseType, bool]:
        await manager.initialize()
        return await manager.health_check()

    status = run_with_manager(_check, branch=branch)
    rows = [{"database": t.value, "connected": ok} for t, ok in status.items()]
    output(rows, as_json=json_out, title="Database Health")
    if not status or not all(status.values()):
        raise typer.Exit(code=1)


@app.command()
def query(
    sql: str = typer.Argument(..., help="SQL to run"),
    database: str | None = typer.Option(
        None, "--database", "-d", help="CLICKHOUSE or POSTGRESQL (primary if omitted)"
    ),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Catalog key, e.g. DB2"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a read query and print the rows."""
    db_type = parse_database_option(database)

    async def _query(manager: ConnectionManager) -> QueryResult:
        adapter = await manager.get_adapter(db_type)
        return await adapter.query(sql)

    result = run_with_manager(_query, branch=branch)
    if json_out:
        output(result.data, as_json=True)
        return
    if not result.data:
        console.print("[dim]No rows.[/dim]")
        return
    columns = (result.meta or {}).get("columns")
    _print_table(result.data, columns=columns)
    console.print(f"\n[dim]{result.rows} row(s)[/dim]")
