"""Row CRUD against user tables.

Rows are plain ``dict[str, Any]`` maps keyed by column name. The primary key
is discovered from the catalog on every call and matched through its text
form, so row ids can arrive as path strings whatever the key type is.
"""

import json
from typing import Any

import duckdb
import structlog

from dbadmin import metrics
from dbadmin.database import catalog, db, result_to_dicts, utcnow
from dbadmin.exceptions import (
    ExecutionError,
    InvalidRequest,
    NoPrimaryKey,
    RowNotFound,
    TableNotFound,
)
from dbadmin.identifiers import quote, validate_identifier

logger = structlog.get_logger()


def bind_value(value: Any) -> Any:
    """Prepare one row value for parameter binding."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _validated_fields(row: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(row, dict):
        raise InvalidRequest("Row data must be a JSON object", {"data": row})
    for column in row:
        validate_identifier(column, "column")
    return row


def _require_table(conn: duckdb.DuckDBPyConnection, table_name: str) -> None:
    if not catalog.table_exists(conn, table_name):
        raise TableNotFound(table_name)


def primary_key_column(conn: duckdb.DuckDBPyConnection, table_name: str) -> str:
    """First primary-key column of the table; composite keys use their first column."""
    columns = catalog.primary_key_columns(conn, table_name)
    if not columns:
        raise NoPrimaryKey(
            f"Table {table_name} has no primary key",
            {"table_name": table_name},
        )
    return columns[0]


def _affected(result: duckdb.DuckDBPyConnection) -> int:
    row = result.fetchone()
    return int(row[0]) if row else 0


def _count(operation: str, status: str) -> None:
    metrics.ROW_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()


def get_table_data(table_name: str) -> dict[str, Any]:
    validate_identifier(table_name, "table")
    with db.connection() as conn:
        _require_table(conn, table_name)
        columns = [col["name"] for col in catalog.list_columns(conn, table_name)]
        try:
            _, rows = result_to_dicts(conn.execute(f"SELECT * FROM {quote(table_name)}"))
        except duckdb.Error as e:
            raise ExecutionError(f"Failed to read table: {e}", {"table_name": table_name}) from e

    return {"columns": columns, "rows": rows}


def add_row(table_name: str, row: dict[str, Any]) -> dict[str, Any]:
    """
    Insert one row with exactly the supplied columns.

    Omitted columns take their defaults. Returns the stored row.
    """
    validate_identifier(table_name, "table")
    fields = _validated_fields(row)

    if fields:
        columns = ", ".join(quote(col) for col in fields)
        placeholders = ", ".join("?" for _ in fields)
        sql = f"INSERT INTO {quote(table_name)} ({columns}) VALUES ({placeholders}) RETURNING *"
    else:
        sql = f"INSERT INTO {quote(table_name)} DEFAULT VALUES RETURNING *"

    try:
        with db.transaction() as conn:
            _require_table(conn, table_name)
            _, inserted = result_to_dicts(
                conn.execute(sql, [bind_value(v) for v in fields.values()])
            )
    except duckdb.Error as e:
        _count("insert", "failed")
        raise ExecutionError(f"Failed to insert row: {e}", {"table_name": table_name}) from e

    _count("insert", "success")
    logger.info("row_inserted", table_name=table_name, columns=list(fields))
    return inserted[0] if inserted else {}


def update_row(table_name: str, row_id: str, row: dict[str, Any]) -> int:
    """
    Update the row(s) whose primary key matches ``row_id``.

    The primary-key column itself is never assigned.

    Returns:
        Number of rows affected
    """
    validate_identifier(table_name, "table")
    fields = _validated_fields(row)

    try:
        with db.transaction() as conn:
            _require_table(conn, table_name)
            pk = primary_key_column(conn, table_name)
            updates = {col: val for col, val in fields.items() if col.lower() != pk.lower()}
            if not updates:
                raise InvalidRequest(
                    "No columns to update",
                    {"table_name": table_name, "primary_key": pk},
                )

            assignments = ", ".join(f"{quote(col)} = ?" for col in updates)
            params = [bind_value(v) for v in updates.values()] + [str(row_id)]
            affected = _affected(
                conn.execute(
                    f"UPDATE {quote(table_name)} SET {assignments} "
                    f"WHERE CAST({quote(pk)} AS VARCHAR) = ?",
                    params,
                )
            )
    except duckdb.Error as e:
        _count("update", "failed")
        raise ExecutionError(
            f"Failed to update row: {e}", {"table_name": table_name, "row_id": row_id}
        ) from e

    _count("update", "success")
    logger.info("row_updated", table_name=table_name, row_id=row_id, affected=affected)
    return affected


def delete_row(table_name: str, row_id: str) -> int:
    """Delete by primary key. A missing id deletes nothing and is not an error."""
    validate_identifier(table_name, "table")

    try:
        with db.transaction() as conn:
            _require_table(conn, table_name)
            pk = primary_key_column(conn, table_name)
            affected = _affected(
                conn.execute(
                    f"DELETE FROM {quote(table_name)} WHERE CAST({quote(pk)} AS VARCHAR) = ?",
                    [str(row_id)],
                )
            )
    except duckdb.Error as e:
        _count("delete", "failed")
        raise ExecutionError(
            f"Failed to delete row: {e}", {"table_name": table_name, "row_id": row_id}
        ) from e

    _count("delete", "success")
    logger.info("row_deleted", table_name=table_name, row_id=row_id, affected=affected)
    return affected


def backup_row(table_name: str, row_id: str) -> dict[str, Any]:
    """Snapshot a single row as JSON."""
    validate_identifier(table_name, "table")

    with db.connection() as conn:
        _require_table(conn, table_name)
        pk = primary_key_column(conn, table_name)
        try:
            _, rows = result_to_dicts(
                conn.execute(
                    f"SELECT * FROM {quote(table_name)} WHERE CAST({quote(pk)} AS VARCHAR) = ?",
                    [str(row_id)],
                )
            )
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to read row: {e}", {"table_name": table_name, "row_id": row_id}
            ) from e

    if not rows:
        raise RowNotFound(table_name, str(row_id))

    _count("backup", "success")
    return {
        "table": table_name,
        "id": row_id,
        "data": rows[0],
        "backed_up_at": utcnow().isoformat(),
    }


def restore_row(table_name: str, row_id: str, data: dict[str, Any]) -> int:
    """
    Write a row snapshot back by id.

    This is an update: a row that was deleted in the meantime is not
    recreated and 0 is returned.
    """
    affected = update_row(table_name, row_id, data)
    logger.info("row_restored", table_name=table_name, row_id=row_id, affected=affected)
    return affected
