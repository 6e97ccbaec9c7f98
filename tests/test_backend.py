"""Tests for the health endpoint and request plumbing."""

import warnings
from pathlib import Path

from fastapi.testclient import TestClient

from dbadmin import exceptions
from dbadmin.exceptions import UploadTooLarge


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_check_success(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database_available"] is True
        assert data["duckdb_version"]
        assert set(data["details"]) == {"data_dir", "database_dir"}

    def test_health_check_fails_when_storage_missing(self, client: TestClient, missing_data_dir):
        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "storage_unavailable"

    def test_health_check_returns_request_id(self, client: TestClient):
        response = client.get("/health")

        assert "X-Request-ID" in response.headers

    def test_health_check_uses_provided_request_id(self, client: TestClient):
        request_id = "test-request-id-123"
        response = client.get("/health", headers={"X-Request-ID": request_id})

        assert response.headers["X-Request-ID"] == request_id


class TestRoot:
    def test_root(self, client: TestClient):
        data = client.get("/").json()
        assert data["health"] == "/health"


class TestErrorBodies:
    """Domain errors share the {"detail": {error, message, details}} shape."""

    def test_error_body_shape(self, client: TestClient):
        response = client.get("/api/tables/missing/info")

        assert response.status_code == 404
        assert response.json() == {
            "detail": {
                "error": "table_not_found",
                "message": "Table missing not found",
                "details": {"table_name": "missing"},
            }
        }

    def test_error_response_keeps_request_id(self, client: TestClient):
        response = client.get("/api/tables/missing/info", headers={"X-Request-ID": "abc"})

        assert response.headers["X-Request-ID"] == "abc"


class TestErrorClasses:
    """Status codes carried by the domain errors."""

    def test_upload_too_large_is_413(self):
        error = UploadTooLarge("too big", {"limit": 10})

        assert error.status_code == 413
        assert error.to_dict()["error"] == "upload_too_large"

    def test_error_module_uses_no_deprecated_constants(self):
        source = Path(exceptions.__file__).read_text()

        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            exec(compile(source, exceptions.__file__, "exec"), {"__name__": "error_classes"})
