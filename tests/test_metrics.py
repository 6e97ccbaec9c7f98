"""Tests for Prometheus metrics endpoint and middleware."""

import pytest
from prometheus_client import REGISTRY

from dbadmin.middleware.metrics import normalize_path


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    def test_metrics_endpoint_returns_prometheus_format(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        content = response.text
        assert "dbadmin_api_requests_total" in content
        assert "dbadmin_api_request_duration_seconds" in content

    def test_metrics_includes_service_info(self, client):
        content = client.get("/metrics").text

        assert "dbadmin_api_info" in content
        assert "duckdb_version" in content

    def test_metrics_includes_storage_gauges(self, client, items_table):
        content = client.get("/metrics").text

        assert "dbadmin_tables_total 1.0" in content
        assert "dbadmin_database_size_bytes" in content

    def test_schema_operations_are_counted(self, client):
        before = REGISTRY.get_sample_value(
            "dbadmin_schema_operations_total",
            {"operation": "create_table", "status": "success"},
        ) or 0

        client.post("/api/tables", json={"name": "counted", "columns": ["a:TEXT"]})

        after = REGISTRY.get_sample_value(
            "dbadmin_schema_operations_total",
            {"operation": "create_table", "status": "success"},
        )
        assert after == before + 1

    def test_errors_are_counted_by_type(self, client):
        labels = {"type": "table_not_found", "endpoint": "/api/tables/{table_name}/info"}
        before = REGISTRY.get_sample_value("dbadmin_api_errors_total", labels) or 0

        client.get("/api/tables/missing/info")

        assert REGISTRY.get_sample_value("dbadmin_api_errors_total", labels) == before + 1

    def test_forbidden_queries_are_counted(self, client):
        labels = {"status": "forbidden"}
        before = REGISTRY.get_sample_value("dbadmin_query_executions_total", labels) or 0

        client.post("/api/queries/execute", json={"query": "DROP TABLE x"})

        assert REGISTRY.get_sample_value("dbadmin_query_executions_total", labels) == before + 1


class TestNormalizePath:
    """Tests for metrics label path normalization."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/health", "/health"),
            ("/", "/"),
            ("/api/tables", "/api/tables"),
            ("/api/tables/orders", "/api/tables/{table_name}"),
            ("/api/tables/orders/info", "/api/tables/{table_name}/info"),
            ("/api/tables/orders/rows/42", "/api/tables/{table_name}/rows/{row_id}"),
            ("/api/tables/orders/rows/restore", "/api/tables/{table_name}/rows/restore"),
            ("/api/tables/orders/rows/42/backup", "/api/tables/{table_name}/rows/{row_id}/backup"),
            ("/api/tables/orders/columns/price", "/api/tables/{table_name}/columns/{column_name}"),
            ("/api/export/orders", "/api/export/{table_name}"),
            ("/api/export/query", "/api/export/query"),
            ("/api/queries/history", "/api/queries/history"),
            ("/api/queries/7", "/api/queries/{query_id}"),
        ],
    )
    def test_normalize_path(self, path, expected):
        assert normalize_path(path) == expected
