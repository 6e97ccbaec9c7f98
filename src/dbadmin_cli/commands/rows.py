"""Row commands for the DB Admin CLI."""

import json
from typing import Any

import typer

from ..output import print_dict, print_error, print_json, print_success
from ..main import api_session, state

app = typer.Typer(help="Insert, update and delete rows")


def parse_data(data: str) -> dict[str, Any]:
    """Parse a --data JSON object or exit with an error."""
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as e:
        print_error(f"Invalid JSON for --data: {e}")
        raise typer.Exit(1)
    if not isinstance(parsed, dict):
        print_error("--data must be a JSON object")
        raise typer.Exit(1)
    return parsed


@app.command("add")
def add_row(
    table: str = typer.Argument(..., help="Table name"),
    data: str = typer.Option("{}", "--data", "-d", help='Row as JSON, e.g. \'{"name":"pen"}\''),
) -> None:
    """Insert a row."""
    row = parse_data(data)
    with api_session() as client:
        response = client.post(f"/api/tables/{table}/rows", row)

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Row added to '{table}'")
        print_dict(response.get("row", {}))


@app.command("update")
def update_row(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., metavar="ID", help="Primary key value"),
    data: str = typer.Option(..., "--data", "-d", help="Columns to set as JSON"),
) -> None:
    """Update columns of the row with the given id."""
    row = parse_data(data)
    with api_session() as client:
        response = client.put(f"/api/tables/{table}/rows/{row_id}", row)

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Updated {response.get('updated', 0)} row(s)")


@app.command("delete")
def delete_row(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., metavar="ID", help="Primary key value"),
) -> None:
    """Delete the row with the given id."""
    with api_session() as client:
        response = client.delete(f"/api/tables/{table}/rows/{row_id}")

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Deleted {response.get('deleted', 0)} row(s)")


@app.command("backup")
def backup_row(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., metavar="ID", help="Primary key value"),
) -> None:
    """Print a JSON snapshot of one row."""
    with api_session() as client:
        response = client.get(f"/api/tables/{table}/rows/{row_id}/backup")
    print_json(response)


@app.command("restore")
def restore_row(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., metavar="ID", help="Primary key value"),
    data: str = typer.Option(..., "--data", "-d", help="Row snapshot data as JSON"),
) -> None:
    """Write a row snapshot back. A deleted row is not recreated."""
    row = parse_data(data)
    with api_session() as client:
        response = client.post(
            f"/api/tables/{table}/rows/restore", {"id": row_id, "data": row}
        )

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Restored {response.get('updated', 0)} row(s)")
