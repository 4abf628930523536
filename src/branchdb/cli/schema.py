"""
CLI: ``branchdb schema``: describe the tables of a store.
"""

from __future__ import annotations

import typer

from branchdb.cli.utils import console, err_console, output, parse_database_option, run_with_manager
from branchdb.core.manager import ConnectionManager
from branchdb.core.schema_cache import SchemaCache, SchemaRefreshResult, TableSchema

app = typer.Typer(no_args_is_help=True)

DATABASE_HELP = "CLICKHOUSE or POSTGRESQL (primary if omitted)"


@app.command()
def show(
    database: str | None = typer.Option(None, "--database", "-d", help=DATABASE_HELP),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Catalog key, e.g. DB2"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print every table and its columns."""
    db_type = parse_database_option(database)

    async def _load(manager: ConnectionManager) -> tuple[list[TableSchema], str]:
        cache = SchemaCache(manager, db_type)
        tables = await cache.get()
        return tables, await cache.describe()

    tables, text = run_with_manager(_load, branch=branch)
    if json_out:
        output(tables, as_json=True)
        return
    console.print(text)


@app.command()
def refresh(
    database: str | None = typer.Option(None, "--database", "-d", help=DATABASE_HELP),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Catalog key, e.g. DB2"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Reload the schema and report the table count."""
    db_type = parse_database_option(database)

    async def _refresh(manager: ConnectionManager) -> SchemaRefreshResult:
        return await SchemaCache(manager, db_type).refresh()

    result = run_with_manager(_refresh, branch=branch)
    if not result.success:
        err_console.print(f"[bold red]Schema refresh failed[/bold red]: {result.error}")
        raise typer.Exit(code=1)
    output(result, as_json=json_out, title="Schema Refresh")
