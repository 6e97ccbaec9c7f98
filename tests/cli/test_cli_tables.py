"""Tests for the tables command group."""

import json

import respx
from httpx import Response
from typer.testing import CliRunner

from dbadmin_cli.main import app


runner = CliRunner()
API = "http://test-api/api"


class TestTablesList:
    """Tests for dbadmin tables list."""

    @respx.mock
    def test_list_tables(self):
        respx.get(f"{API}/tables").mock(return_value=Response(200, json=["items", "notes"]))

        result = runner.invoke(app, ["tables", "list"])

        assert result.exit_code == 0
        assert "items" in result.stdout
        assert "notes" in result.stdout
        assert "Total: 2 table(s)" in result.stdout

    @respx.mock
    def test_list_tables_json(self):
        respx.get(f"{API}/tables").mock(return_value=Response(200, json=["items"]))

        result = runner.invoke(app, ["--json", "tables", "list"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["items"]

    @respx.mock
    def test_server_error_is_reported(self):
        respx.get(f"{API}/tables").mock(return_value=Response(500, json={"detail": "Internal server error"}))

        result = runner.invoke(app, ["tables", "list"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestTablesCreate:
    """Tests for dbadmin tables create."""

    @respx.mock
    def test_create_sends_columns(self):
        route = respx.post(f"{API}/tables").mock(
            return_value=Response(
                201,
                json={
                    "status": "created",
                    "table": "items",
                    "meta_id": 1,
                    "columns": ["name TEXT", "id SERIAL PRIMARY KEY"],
                },
            )
        )

        result = runner.invoke(
            app, ["tables", "create", "items", "-c", "name:TEXT", "--column", "price:FLOAT"]
        )

        assert result.exit_code == 0
        assert "Table 'items' created" in result.stdout
        body = json.loads(route.calls.last.request.content)
        assert body == {"name": "items", "columns": ["name:TEXT", "price:FLOAT"]}

    @respx.mock
    def test_create_existing_table_fails(self):
        respx.post(f"{API}/tables").mock(
            return_value=Response(
                409,
                json={
                    "detail": {
                        "error": "table_exists",
                        "message": "Table items already exists",
                        "details": {"table_name": "items"},
                    }
                },
            )
        )

        result = runner.invoke(app, ["tables", "create", "items", "-c", "name:TEXT"])

        assert result.exit_code == 1
        assert "Error: Table items already exists" in result.output

    @respx.mock
    def test_validation_errors_are_flattened(self):
        respx.post(f"{API}/tables").mock(
            return_value=Response(
                422,
                json={"detail": [{"loc": ["body", "name"], "msg": "Field required"}]},
            )
        )

        result = runner.invoke(app, ["tables", "create", "items"])

        assert result.exit_code == 1
        assert "body.name: Field required" in result.output


class TestTablesInfoAndData:
    """Tests for dbadmin tables info/data."""

    @respx.mock
    def test_info_shows_columns_and_meta(self):
        respx.get(f"{API}/tables/items/info").mock(
            return_value=Response(
                200,
                json={
                    "name": "items",
                    "columns": [
                        {"column_name": "name", "data_type": "VARCHAR"},
                        {"column_name": "id", "data_type": "INTEGER"},
                    ],
                    "meta": {
                        "id": 1,
                        "name": "items",
                        "columns": ["name:TEXT"],
                        "created_at": "2024-01-01T00:00:00",
                    },
                },
            )
        )

        result = runner.invoke(app, ["tables", "info", "items"])

        assert result.exit_code == 0
        assert "VARCHAR" in result.stdout
        assert "name:TEXT" in result.stdout

    @respx.mock
    def test_info_without_meta(self):
        respx.get(f"{API}/tables/legacy/info").mock(
            return_value=Response(
                200,
                json={"name": "legacy", "columns": [{"column_name": "a", "data_type": "INTEGER"}], "meta": None},
            )
        )

        result = runner.invoke(app, ["tables", "info", "legacy"])

        assert result.exit_code == 0
        assert "No metadata" in result.stdout

    @respx.mock
    def test_data_prints_rows(self):
        respx.get(f"{API}/tables/items/data").mock(
            return_value=Response(
                200,
                json={"columns": ["id", "name"], "rows": [{"id": 1, "name": "pen"}]},
            )
        )

        result = runner.invoke(app, ["tables", "data", "items"])

        assert result.exit_code == 0
        assert "pen" in result.stdout
        assert "1 row(s)" in result.stdout


class TestTablesDrop:
    """Tests for dbadmin tables drop."""

    @respx.mock
    def test_drop_with_yes(self):
        route = respx.delete(f"{API}/tables/items").mock(
            return_value=Response(200, json={"status": "dropped", "table": "items"})
        )

        result = runner.invoke(app, ["tables", "drop", "items", "--yes"])

        assert result.exit_code == 0
        assert route.called
        assert "Table 'items' dropped" in result.stdout

    @respx.mock
    def test_drop_aborted_without_confirmation(self):
        route = respx.delete(f"{API}/tables/items").mock(
            return_value=Response(200, json={"status": "dropped", "table": "items"})
        )

        result = runner.invoke(app, ["tables", "drop", "items"], input="n\n")

        assert result.exit_code == 1
        assert not route.called


class TestColumnCommands:
    """Tests for dbadmin tables add-column/drop-column."""

    @respx.mock
    def test_add_column(self):
        route = respx.post(f"{API}/tables/items/columns").mock(
            return_value=Response(201, json={"name": "items", "columns": []})
        )

        result = runner.invoke(app, ["tables", "add-column", "items", "stock", "INTEGER"])

        assert result.exit_code == 0
        assert json.loads(route.calls.last.request.content) == {"name": "stock", "type": "INTEGER"}

    @respx.mock
    def test_drop_column_json(self):
        respx.delete(f"{API}/tables/items/columns/stock").mock(
            return_value=Response(200, json={"name": "items", "columns": []})
        )

        result = runner.invoke(app, ["--json", "tables", "drop-column", "items", "stock"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["name"] == "items"
