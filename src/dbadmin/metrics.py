"""Prometheus metrics definitions for the DB Admin API.

This module defines all Prometheus metrics used for observability:
- HTTP request metrics (count, duration, in-flight)
- Schema (DDL) and row operation metrics
- Backup/restore and CSV import/export metrics
- Free-form query metrics
- Storage metrics (database size, table count)
"""

import platform
import time
from prometheus_client import Counter, Histogram, Gauge, Info
from prometheus_client import ProcessCollector

# Register ProcessCollector for process_* metrics
# Note: ProcessCollector only works on Linux (uses /proc filesystem)
if platform.system() == "Linux":
    try:
        ProcessCollector()
    except ValueError:
        pass  # Already registered

# =============================================================================
# Service Health Metrics
# =============================================================================

SERVICE_UP = Gauge(
    "dbadmin_api_up",
    "Whether the DB Admin API service is up (1) or down (0)"
)

SERVICE_START_TIME = Gauge(
    "dbadmin_api_start_time_seconds",
    "Unix timestamp when the service started"
)

SERVICE_START_TIME.set(time.time())
SERVICE_UP.set(1)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "dbadmin_api_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "dbadmin_api_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_IN_FLIGHT = Gauge(
    "dbadmin_api_requests_in_flight",
    "Number of HTTP requests currently being processed",
    ["method"]
)

# =============================================================================
# Error Metrics
# =============================================================================

ERROR_COUNT = Counter(
    "dbadmin_api_errors_total",
    "Total number of errors by type",
    ["type", "endpoint"]
)

# =============================================================================
# Database Metrics
# =============================================================================

DB_CONNECTIONS_ACTIVE = Gauge(
    "dbadmin_db_connections_active",
    "Number of currently open DuckDB connections"
)

SCHEMA_OPERATIONS_TOTAL = Counter(
    "dbadmin_schema_operations_total",
    "Total schema (DDL) operations",
    ["operation", "status"]  # create_table, drop_table, add_column, ...
)

SCHEMA_OPERATION_DURATION = Histogram(
    "dbadmin_schema_operation_duration_seconds",
    "Schema operation duration in seconds",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

ROW_OPERATIONS_TOTAL = Counter(
    "dbadmin_row_operations_total",
    "Total row CRUD operations",
    ["operation", "status"]
)

# =============================================================================
# Backup / Restore Metrics
# =============================================================================

BACKUP_OPERATIONS_TOTAL = Counter(
    "dbadmin_backup_operations_total",
    "Total backup and restore operations",
    ["kind", "status"]  # full_backup, full_restore, table_backup, table_restore
)

BACKUP_DURATION = Histogram(
    "dbadmin_backup_duration_seconds",
    "Backup/restore duration in seconds",
    ["kind"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0, 300.0]
)

IMPORT_ROWS_TOTAL = Counter(
    "dbadmin_import_rows_total",
    "Total rows inserted from CSV restores"
)

EXPORT_ROWS_TOTAL = Counter(
    "dbadmin_export_rows_total",
    "Total rows written to CSV exports"
)

# =============================================================================
# Free-form Query Metrics
# =============================================================================

QUERY_EXECUTIONS_TOTAL = Counter(
    "dbadmin_query_executions_total",
    "Total free-form query executions",
    ["status"]  # success, failed, forbidden
)

QUERY_DURATION = Histogram(
    "dbadmin_query_duration_seconds",
    "Free-form query duration in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0]
)

# =============================================================================
# Storage Metrics (collected on-demand)
# =============================================================================

TABLES_TOTAL = Gauge(
    "dbadmin_tables_total",
    "Number of user tables in the database"
)

DATABASE_SIZE_BYTES = Gauge(
    "dbadmin_database_size_bytes",
    "Size of the DuckDB database file in bytes"
)

# =============================================================================
# Service Info
# =============================================================================

SERVICE_INFO = Info(
    "dbadmin_api",
    "DB Admin API service information"
)


def set_service_info(version: str, duckdb_version: str) -> None:
    """Set service info labels."""
    SERVICE_INFO.info({
        "version": version,
        "duckdb_version": duckdb_version,
        "python_version": platform.python_version(),
    })
