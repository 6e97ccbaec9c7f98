"""Backup and restore commands for the DB Admin CLI."""

from pathlib import Path
from typing import Optional

import typer

from ..output import print_error, print_json, print_success
from ..main import api_session, state

app = typer.Typer(help="Back up and restore the database or single tables")


def _require_file(path: Path) -> None:
    if not path.is_file():
        print_error(f"File not found: {path}")
        raise typer.Exit(1)


@app.command("full")
def backup_full(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: name sent by the server)"
    ),
) -> None:
    """Download a ZIP backup of every table."""
    with api_session() as client:
        path = client.download("/api/backup", output, default_name="db_backup.zip")

    if state.json_output:
        print_json({"file": str(path)})
    else:
        print_success(f"Backup saved to {path}")


@app.command("restore")
def restore_full(
    file: Path = typer.Argument(..., help="Backup ZIP archive"),
) -> None:
    """Restore the database from a ZIP backup.

    Tables in the archive are recreated with TEXT columns.
    """
    _require_file(file)
    with api_session() as client, open(file, "rb") as f:
        response = client.upload_file("/api/restore", f, file.name, field="backup")

    if state.json_output:
        print_json(response)
    else:
        tables = response.get("tables", [])
        print_success(f"Restored {len(tables)} table(s): {', '.join(tables) or '-'}")


@app.command("table")
def backup_table(
    name: str = typer.Argument(..., help="Table name"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: name sent by the server)"
    ),
) -> None:
    """Download a CSV backup of one table."""
    with api_session() as client:
        path = client.download(
            f"/api/tables/{name}/backup", output, default_name=f"{name}_backup.csv"
        )

    if state.json_output:
        print_json({"file": str(path)})
    else:
        print_success(f"Table '{name}' saved to {path}")


@app.command("restore-table")
def restore_table(
    name: str = typer.Argument(..., help="Table name"),
    file: Path = typer.Argument(..., help="CSV file"),
) -> None:
    """Replace all rows of a table with the rows of a CSV file."""
    _require_file(file)
    with api_session() as client, open(file, "rb") as f:
        response = client.upload_file(f"/api/tables/{name}/restore", f, file.name)

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Restored {response.get('rows', 0)} row(s) into '{name}'")
