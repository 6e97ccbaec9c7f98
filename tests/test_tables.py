"""Tests for table management endpoints."""

import pytest
from fastapi.testclient import TestClient

from dbadmin import ddl
from dbadmin.database import catalog, db
from dbadmin.exceptions import DuplicateColumn


class TestCreateTable:
    """Tests for POST /api/tables."""

    def test_create_table_appends_implicit_id(self, client: TestClient):
        response = client.post(
            "/api/tables", json={"name": "items", "columns": ["name:TEXT", "price:FLOAT"]}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "created"
        assert data["table"] == "items"
        assert data["meta_id"]
        assert data["columns"] == ["name TEXT", "price FLOAT", "id SERIAL PRIMARY KEY"]

    def test_info_reports_requested_columns_plus_id(self, client: TestClient):
        client.post("/api/tables", json={"name": "items", "columns": ["name:TEXT", "price:FLOAT"]})

        response = client.get("/api/tables/items/info")

        assert response.status_code == 200
        info = response.json()
        assert info["name"] == "items"
        assert [c["column_name"] for c in info["columns"]] == ["name", "price", "id"]
        types = {c["column_name"]: c["data_type"] for c in info["columns"]}
        assert types == {"name": "VARCHAR", "price": "DOUBLE", "id": "INTEGER"}
        assert info["meta"]["name"] == "items"
        assert info["meta"]["columns"] == ["name:TEXT", "price:FLOAT"]
        assert info["meta"]["created_at"]

    def test_serial_column_replaces_implicit_id(self, client: TestClient):
        response = client.post(
            "/api/tables", json={"name": "notes", "columns": ["note_id:SERIAL", "body:TEXT"]}
        )

        assert response.status_code == 201
        assert response.json()["columns"] == ["note_id SERIAL", "body TEXT"]
        info = client.get("/api/tables/notes/info").json()
        assert [c["column_name"] for c in info["columns"]] == ["note_id", "body"]

    def test_all_allowed_types(self, client: TestClient):
        columns = [
            "a:INTEGER", "b:VARCHAR(255)", "c:TEXT", "d:BOOLEAN", "e:DATE",
            "f:TIMESTAMP", "g:FLOAT", "h:UUID", "i:integer",
        ]
        response = client.post("/api/tables", json={"name": "typed", "columns": columns})

        assert response.status_code == 201
        info = client.get("/api/tables/typed/info").json()
        assert len(info["columns"]) == len(columns) + 1

    def test_empty_column_list_creates_id_only(self, client: TestClient):
        response = client.post("/api/tables", json={"name": "bare", "columns": []})

        assert response.status_code == 201
        info = client.get("/api/tables/bare/info").json()
        assert [c["column_name"] for c in info["columns"]] == ["id"]

    def test_duplicate_column_creates_nothing(self, client: TestClient):
        response = client.post(
            "/api/tables", json={"name": "dup", "columns": ["name:TEXT", "NAME:INTEGER"]}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "duplicate_column"
        assert client.get("/api/tables").json() == []

    def test_explicit_id_without_serial_is_duplicate(self, client: TestClient):
        response = client.post(
            "/api/tables", json={"name": "dup", "columns": ["id:INTEGER", "name:TEXT"]}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "duplicate_column"

    def test_existing_table_conflicts(self, client: TestClient):
        client.post("/api/tables", json={"name": "items", "columns": ["name:TEXT"]})

        response = client.post("/api/tables", json={"name": "items", "columns": ["x:TEXT"]})

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "table_exists"

    @pytest.mark.parametrize(
        "payload, error",
        [
            ({"name": "2cool", "columns": ["a:TEXT"]}, "invalid_identifier"),
            ({"name": "t", "columns": ["bad name:TEXT"]}, "invalid_identifier"),
            ({"name": "t", "columns": ["a:BIGINT"]}, "unsupported_type"),
            ({"name": "t", "columns": ["a"]}, "malformed_column_spec"),
        ],
    )
    def test_validation_errors(self, client: TestClient, payload, error):
        response = client.post("/api/tables", json=payload)

        assert response.status_code == 400
        body = response.json()["detail"]
        assert body["error"] == error
        assert body["message"]
        assert client.get("/api/tables").json() == []


class TestListTables:
    """Tests for GET /api/tables."""

    def test_list_tables_empty(self, client: TestClient):
        response = client.get("/api/tables")
        assert response.status_code == 200
        assert response.json() == []

    def test_list_tables_alphabetical_without_internal_tables(self, client: TestClient):
        for name in ("zebra", "apple", "mango"):
            client.post("/api/tables", json={"name": name, "columns": ["v:TEXT"]})
        client.post("/api/queries/save", json={"query": "SELECT 1"})

        assert client.get("/api/tables").json() == ["apple", "mango", "zebra"]


class TestTableInfo:
    """Tests for GET /api/tables/{name}/info."""

    def test_missing_table_is_404(self, client: TestClient):
        response = client.get("/api/tables/missing/info")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "table_not_found"

    def test_table_created_elsewhere_has_no_meta(self, client: TestClient):
        with db.connection() as conn:
            conn.execute("CREATE TABLE external (x INTEGER)")

        response = client.get("/api/tables/external/info")

        assert response.status_code == 200
        assert response.json()["meta"] is None
        assert response.json()["columns"] == [{"column_name": "x", "data_type": "INTEGER"}]

    def test_invalid_name_is_400(self, client: TestClient):
        response = client.get("/api/tables/bad-name/info")
        assert response.status_code == 400


class TestDropTable:
    """Tests for DELETE /api/tables/{name}."""

    def test_drop_table_removes_table_meta_and_sequence(self, client: TestClient, items_table):
        response = client.delete("/api/tables/items")

        assert response.status_code == 200
        assert response.json() == {"status": "dropped", "table": "items"}
        assert client.get("/api/tables").json() == []
        with db.connection() as conn:
            sequences = conn.execute(
                "SELECT sequence_name FROM duckdb_sequences() WHERE sequence_name = 'items_id_seq'"
            ).fetchall()
        assert sequences == []

    def test_drop_then_recreate_same_name(self, client: TestClient, items_table):
        client.delete("/api/tables/items")

        response = client.post("/api/tables", json={"name": "items", "columns": ["label:TEXT"]})

        assert response.status_code == 201
        info = client.get("/api/tables/items/info").json()
        assert info["meta"]["columns"] == ["label:TEXT"]
        added = client.post("/api/tables/items/rows", json={"label": "x"}).json()
        assert added["row"]["id"] == 1

    def test_drop_missing_table_is_404(self, client: TestClient):
        response = client.delete("/api/tables/missing")
        assert response.status_code == 404


class TestCreateTableAtomicity:
    """CREATE TABLE and its metadata are one unit of work."""

    def test_failed_metadata_write_leaves_no_table(self, initialized_db, monkeypatch):
        from dbadmin.database import metadata_store

        def fail(*args, **kwargs):
            raise RuntimeError("metadata store unavailable")

        monkeypatch.setattr(metadata_store, "create_table_meta", fail)

        with pytest.raises(RuntimeError):
            ddl.create_table("items", ["name:TEXT"])

        with db.connection() as conn:
            assert not catalog.table_exists(conn, "items")

    def test_duplicate_column_raises_before_sql(self):
        with pytest.raises(DuplicateColumn):
            ddl.build_create_table("t", ["a:TEXT", "a:TEXT"])

    def test_build_create_table_statements(self):
        statements, definitions = ddl.build_create_table("items", ["name:text"])

        assert statements == [
            'CREATE SEQUENCE IF NOT EXISTS "items_id_seq"',
            'CREATE TABLE "items" ("name" TEXT, '
            "\"id\" INTEGER DEFAULT nextval('items_id_seq') PRIMARY KEY)",
        ]
        assert definitions == ["name TEXT", "id SERIAL PRIMARY KEY"]
