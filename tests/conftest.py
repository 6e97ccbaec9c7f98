"""Pytest configuration and fixtures."""

import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from dbadmin.config import settings
from dbadmin.database import db
from dbadmin.main import app


@pytest.fixture
def temp_data_dir(monkeypatch):
    """Point settings at a temporary data directory."""
    tmpdir = tempfile.mkdtemp()
    data_dir = Path(tmpdir) / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    database_path = data_dir / "dbadmin.duckdb"

    monkeypatch.setattr(settings, "data_dir", data_dir)
    monkeypatch.setattr(settings, "database_path", database_path)

    yield {"data_dir": data_dir, "database_path": database_path}

    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def missing_data_dir(monkeypatch):
    """Configure settings with non-existent paths for testing errors."""
    nonexistent = Path("/nonexistent/path/that/does/not/exist")

    monkeypatch.setattr(settings, "data_dir", nonexistent)
    monkeypatch.setattr(settings, "database_path", nonexistent / "dbadmin.duckdb")

    yield nonexistent


@pytest.fixture
def initialized_db(temp_data_dir):
    """Temporary database with the metadata schema in place."""
    db.initialize()
    yield temp_data_dir


@pytest.fixture
def client(temp_data_dir):
    """Test client with the application lifespan (database init) entered."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def items_table(client):
    """Table ``items`` (name TEXT, price FLOAT, implicit id) with two rows."""
    response = client.post(
        "/api/tables", json={"name": "items", "columns": ["name:TEXT", "price:FLOAT"]}
    )
    assert response.status_code == 201
    for row in ({"name": "pen", "price": 1.5}, {"name": "book", "price": 12.0}):
        assert client.post("/api/tables/items/rows", json=row).status_code == 201
    return "items"


@pytest.fixture
def notes_table(client):
    """Table ``notes`` whose own SERIAL column replaces the implicit key (no primary key)."""
    response = client.post(
        "/api/tables", json={"name": "notes", "columns": ["id:SERIAL", "body:TEXT"]}
    )
    assert response.status_code == 201
    return "notes"

