"""Query commands for the DB Admin CLI."""

from pathlib import Path
from typing import Optional

import typer

from ..output import print_info, print_json, print_success, print_table
from ..main import api_session, state

app = typer.Typer(help="Run, save and export SQL queries")


@app.command("run")
def run_query(sql: str = typer.Argument(..., help="SQL text")) -> None:
    """Execute SQL and show the result rows."""
    with api_session() as client:
        response = client.post("/api/queries/execute", {"query": sql})

    if state.json_output:
        print_json(response)
        return

    rows = response.get("data", [])
    print_table(rows, title="Result")
    print_info(f"{len(rows)} row(s)")
    info = response.get("queryInfo")
    if info:
        print_info(f"Saved query #{info['id']} used {info['useCount']} time(s)")


@app.command("save")
def save_query(
    sql: str = typer.Argument(..., help="SQL text"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
) -> None:
    """Save a query to the history."""
    with api_session() as client:
        response = client.post("/api/queries/save", {"query": sql, "name": name})

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Query saved (id {response['id']}, used {response['useCount']} time(s))")


@app.command("history")
def query_history() -> None:
    """List saved queries, most recently used first."""
    with api_session() as client:
        history = client.get("/api/queries/history")

    if state.json_output:
        print_json(history)
        return

    print_table(
        history,
        columns=["id", "name", "query", "useCount", "lastUsed"],
        title="Saved queries",
    )


@app.command("delete")
def delete_query(query_id: int = typer.Argument(..., metavar="ID", help="Saved query id")) -> None:
    """Delete a saved query."""
    with api_session() as client:
        response = client.delete(f"/api/queries/{query_id}")

    if state.json_output:
        print_json(response)
    else:
        print_success(f"Query {query_id} deleted")


@app.command("export")
def export_query(
    sql: str = typer.Argument(..., help="SQL text"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output CSV file (default: query_results.csv)"
    ),
) -> None:
    """Run SQL and save the result as CSV."""
    with api_session() as client:
        path = client.download(
            "/api/export/query",
            output,
            method="POST",
            json_data={"query": sql},
            default_name="query_results.csv",
        )

    if state.json_output:
        print_json({"file": str(path)})
    else:
        print_success(f"Results saved to {path}")
