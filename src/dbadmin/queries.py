"""Free-form SQL execution, CSV export of query results and saved queries."""

import time
from typing import Any

import duckdb
import structlog

from dbadmin import metrics
from dbadmin.config import settings
from dbadmin.database import db, metadata_store, result_to_dicts
from dbadmin.exceptions import (
    ExecutionError,
    ForbiddenQuery,
    InvalidRequest,
    QueryNotFound,
)

logger = structlog.get_logger()


def check_denylist(query: str) -> None:
    """
    Reject query text containing a denylisted token.

    This is a plain case-insensitive substring test, so it also trips on
    identifiers such as ``deleted_at``.
    """
    upper = query.upper()
    for token in settings.query_denylist:
        if token and token.upper() in upper:
            metrics.QUERY_EXECUTIONS_TOTAL.labels(status="forbidden").inc()
            logger.warning("query_forbidden", token=token)
            raise ForbiddenQuery(
                f"Queries containing {token.upper()} are not allowed",
                {"token": token.upper()},
            )


def _require_text(query: str | None) -> str:
    if not query or not query.strip():
        raise InvalidRequest("Query text is required")
    return query


def to_public(saved: dict[str, Any]) -> dict[str, Any]:
    """Saved query in the shape the API returns."""
    return {
        "id": saved["id"],
        "query": saved["query"],
        "name": saved["name"],
        "lastUsed": saved["last_used"],
        "useCount": saved["use_count"],
    }


def save_query(query: str, name: str | None = None) -> dict[str, Any]:
    """Insert a saved query, or bump the stats of the one with the same text."""
    query = _require_text(query)
    with db.transaction() as conn:
        existing = metadata_store.find_saved_query(conn, query)
        if existing:
            saved = metadata_store.touch_saved_query(conn, existing["id"], name)
        else:
            saved = metadata_store.create_saved_query(conn, query, name or None)

    logger.info("query_saved", query_id=saved["id"], use_count=saved["use_count"])
    return to_public(saved)


def execute_query(query: str) -> dict[str, Any]:
    """
    Run free-form SQL and return its rows.

    A saved query with identical text has its usage stats bumped first.
    """
    query = _require_text(query)
    check_denylist(query)

    query_info = None
    with db.transaction() as conn:
        existing = metadata_store.find_saved_query(conn, query)
        if existing:
            saved = metadata_store.touch_saved_query(conn, existing["id"])
            query_info = {
                "id": saved["id"],
                "useCount": saved["use_count"],
                "lastUsed": saved["last_used"],
            }

    start_time = time.time()
    with db.connection() as conn:
        try:
            _, rows = result_to_dicts(conn.execute(query))
        except duckdb.Error as e:
            metrics.QUERY_EXECUTIONS_TOTAL.labels(status="failed").inc()
            raise ExecutionError(f"Query failed: {e}", {"query": query}) from e
    duration = time.time() - start_time

    metrics.QUERY_EXECUTIONS_TOTAL.labels(status="success").inc()
    metrics.QUERY_DURATION.observe(duration)
    logger.info("query_executed", row_count=len(rows), duration_ms=round(duration * 1000, 2))
    return {"data": rows, "queryInfo": query_info}


def export_query(query: str) -> tuple[list[str], list[tuple]]:
    """Run free-form SQL for CSV export; engine errors are reported as 400."""
    query = _require_text(query)
    check_denylist(query)

    with db.connection() as conn:
        try:
            result = conn.execute(query)
            if result.description is None:
                columns, rows = [], []
            else:
                columns = [col[0] for col in result.description]
                rows = result.fetchall()
        except duckdb.Error as e:
            metrics.QUERY_EXECUTIONS_TOTAL.labels(status="failed").inc()
            raise ExecutionError(
                f"Query failed: {e}", {"query": query}, status_code=400
            ) from e

    metrics.QUERY_EXECUTIONS_TOTAL.labels(status="success").inc()
    metrics.EXPORT_ROWS_TOTAL.inc(len(rows))
    logger.info("query_exported", row_count=len(rows))
    return columns, rows


def list_queries() -> list[dict[str, Any]]:
    with db.connection() as conn:
        return [to_public(saved) for saved in metadata_store.list_saved_queries(conn)]


def delete_query(query_id: int) -> None:
    with db.transaction() as conn:
        if not metadata_store.delete_saved_query(conn, query_id):
            raise QueryNotFound(query_id)
    logger.info("query_deleted", query_id=query_id)
