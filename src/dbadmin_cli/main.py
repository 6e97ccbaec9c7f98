"""Main CLI entry point for the DB Admin CLI."""

from contextlib import contextmanager
from typing import Generator, Optional

import typer

from . import __version__
from .client import APIError, DbAdminClient, get_client
from .output import print_error


app = typer.Typer(
    name="dbadmin",
    help="Command line client for the DB Admin API",
    no_args_is_help=True,
)

# Global state
class GlobalState:
    json_output: bool = False
    verbose: bool = False

state = GlobalState()


@contextmanager
def api_session() -> Generator[DbAdminClient, None, None]:
    """Yield a configured client; API and config errors print and exit 1."""
    try:
        client = get_client(verbose=state.verbose)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        yield client
    except APIError as e:
        print_error(e.message)
        raise typer.Exit(1)
    finally:
        client.close()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"dbadmin version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j",
        help="Output as JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show HTTP requests and timings"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """DB Admin CLI - manage tables, rows, queries and backups."""
    state.json_output = json_output
    state.verbose = verbose


# Import and register command groups
from .commands import backup, config_cmd, queries, rows, tables

app.add_typer(config_cmd.app, name="config")
app.add_typer(tables.app, name="tables")
app.add_typer(rows.app, name="rows")
app.add_typer(backup.app, name="backup")
app.add_typer(queries.app, name="queries")


if __name__ == "__main__":
    app()
