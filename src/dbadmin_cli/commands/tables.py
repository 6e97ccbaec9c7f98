"""Tables commands for the DB Admin CLI."""

from typing import Optional

import typer

from ..output import print_dict, print_info, print_json, print_success, print_table
from ..main import api_session, state

app = typer.Typer(help="Manage tables and columns")


@app.command("list")
def list_tables() -> None:
    """List tables."""
    with api_session() as client:
        tables = client.get("/api/tables")

    if state.json_output:
        print_json(tables)
        return

    print_table([{"name": name} for name in tables], columns=["name"], title="Tables")
    print_info(f"Total: {len(tables)} table(s)")


@app.command("create")
def create_table(
    name: str = typer.Argument(..., help="Table name"),
    columns: Optional[list[str]] = typer.Option(
        None, "--column", "-c",
        help="Column as name:TYPE (repeatable)"
    ),
) -> None:
    """Create a new table.

    Column types: INTEGER, SERIAL, VARCHAR(255), TEXT, BOOLEAN, DATE,
    TIMESTAMP, FLOAT, JSON, UUID. Without a SERIAL column an
    'id SERIAL PRIMARY KEY' column is added.

    Example:
        dbadmin tables create items -c name:TEXT -c price:FLOAT
    """
    with api_session() as client:
        response = client.post("/api/tables", {"name": name, "columns": columns or []})

    if state.json_output:
        print_json(response)
        return

    print_success(f"Table '{name}' created")
    for definition in response.get("columns", []):
        print_info(f"  {definition}")


@app.command("info")
def table_info(name: str = typer.Argument(..., help="Table name")) -> None:
    """Show table columns and creation metadata."""
    with api_session() as client:
        info = client.get(f"/api/tables/{name}/info")

    if state.json_output:
        print_json(info)
        return

    print_table(info["columns"], columns=["column_name", "data_type"], title=f"Table: {name}")
    meta = info.get("meta")
    if meta:
        print_dict(
            {
                "Created with": ", ".join(meta["columns"]) or "-",
                "Created at": meta.get("created_at"),
            },
            title="Metadata",
        )
    else:
        print_info("No metadata (table was not created through this service)")


@app.command("drop")
def drop_table(
    name: str = typer.Argument(..., help="Table name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Drop a table and all of its rows."""
    if not yes:
        typer.confirm(f"Drop table '{name}'?", abort=True)

    with api_session() as client:
        response = client.delete(f"/api/tables/{name}")

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Table '{name}' dropped")


@app.command("data")
def table_data(name: str = typer.Argument(..., help="Table name")) -> None:
    """Show all rows of a table."""
    with api_session() as client:
        data = client.get(f"/api/tables/{name}/data")

    if state.json_output:
        print_json(data)
        return

    print_table(data["rows"], columns=data["columns"], title=name)
    print_info(f"{len(data['rows'])} row(s)")


@app.command("add-column")
def add_column(
    name: str = typer.Argument(..., help="Table name"),
    column: str = typer.Argument(..., help="Column name"),
    column_type: str = typer.Argument(..., metavar="TYPE", help="Column type"),
) -> None:
    """Add a column to a table."""
    with api_session() as client:
        response = client.post(
            f"/api/tables/{name}/columns", {"name": column, "type": column_type}
        )

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Column '{column}' added to '{name}'")


@app.command("drop-column")
def drop_column(
    name: str = typer.Argument(..., help="Table name"),
    column: str = typer.Argument(..., help="Column name"),
) -> None:
    """Drop a column from a table."""
    with api_session() as client:
        response = client.delete(f"/api/tables/{name}/columns/{column}")

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Column '{column}' dropped from '{name}'")
