"""
Root Typer application for the branchdb CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from branchdb.core.logging import configure_logging

app = Typer(
    name="branchdb",
    help="branchdb: ClickHouse / PostgreSQL connection layer for branch reporting.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("branchdb")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"branchdb {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for library output."),
) -> None:
    """branchdb CLI: inspect branch databases, run queries, serve the API."""
    configure_logging(level=log_level, json_format=False, stream=sys.stderr)


# ── Sub-command registration ─────────────────────────────────────────────

from branchdb.cli.db import app as db_app  # noqa: E402
from branchdb.cli.schema import app as schema_app  # noqa: E402
from branchdb.cli.serve import app as serve_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database catalog, health and queries.")
app.add_typer(schema_app, name="schema", help="Table and column schema.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
