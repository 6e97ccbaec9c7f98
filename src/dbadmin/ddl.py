"""Table DDL: create, drop and alter user tables from validated input.

CREATE and DROP run together with their TableMeta write in one transaction.
ALTER never touches TableMeta: the stored column specs record what the
table was created with, the catalog reports what it looks like now.
"""

import time
from contextlib import contextmanager
from typing import Any, Generator

import duckdb
import structlog

from dbadmin import metrics
from dbadmin.database import catalog, db, metadata_store
from dbadmin.exceptions import (
    ColumnAlreadyExists,
    DuplicateColumn,
    ExecutionError,
    InvalidRequest,
    TableAlreadyExists,
    TableNotFound,
)
from dbadmin.identifiers import (
    DUCKDB_TYPES,
    normalize_type,
    parse_column_spec,
    quote,
    validate_identifier,
)

logger = structlog.get_logger()

IMPLICIT_KEY_COLUMN = "id"
ALTER_ACTIONS = ("add", "drop")
REBUILD_SUFFIX = "__rebuild"


@contextmanager
def _track(operation: str, **context: Any) -> Generator[None, None, None]:
    """Record duration and outcome of a schema operation."""
    start_time = time.time()
    try:
        yield
    except Exception as e:
        metrics.SCHEMA_OPERATIONS_TOTAL.labels(operation=operation, status="failed").inc()
        logger.warning(f"{operation}_failed", error=str(e), error_type=type(e).__name__, **context)
        raise
    finally:
        metrics.SCHEMA_OPERATION_DURATION.labels(operation=operation).observe(
            time.time() - start_time
        )
    metrics.SCHEMA_OPERATIONS_TOTAL.labels(operation=operation, status="success").inc()


def sequence_name(table_name: str, column_name: str) -> str:
    """Name of the sequence backing a SERIAL column."""
    return f"{table_name}_{column_name}_seq"


def column_definition(
    table_name: str, column_name: str, type_token: str, primary_key: bool = False
) -> tuple[str, str | None]:
    """
    Build the DuckDB definition of one column.

    Returns:
        Tuple of (column SQL, name of the sequence it needs or None)
    """
    sequence = None
    if type_token == "SERIAL":
        sequence = sequence_name(table_name, column_name)
        col_def = f"{quote(column_name)} INTEGER DEFAULT nextval('{sequence}')"
    else:
        col_def = f"{quote(column_name)} {DUCKDB_TYPES[type_token]}"
    if primary_key:
        col_def += " PRIMARY KEY"
    return col_def, sequence


def build_create_table(
    table_name: str, column_specs: list[str]
) -> tuple[list[str], list[str]]:
    """
    Validate a create request and build the statements that implement it.

    Args:
        table_name: Name of the new table
        column_specs: Column specs of the form "name:TYPE"

    Returns:
        Tuple of (SQL statements to run in order, logical column definitions
        such as "price FLOAT" or "id SERIAL PRIMARY KEY")
    """
    validate_identifier(table_name, "table")

    columns = [parse_column_spec(spec) for spec in column_specs]

    seen: set[str] = set()
    for name, _ in columns:
        if name.lower() in seen:
            raise DuplicateColumn(
                f"Duplicate column name: {name}",
                {"column_name": name, "table_name": table_name},
            )
        seen.add(name.lower())

    has_serial = any(type_token == "SERIAL" for _, type_token in columns)
    if not has_serial:
        if IMPLICIT_KEY_COLUMN in seen:
            raise DuplicateColumn(
                f"Column {IMPLICIT_KEY_COLUMN} clashes with the generated primary key; "
                f"declare it as {IMPLICIT_KEY_COLUMN}:SERIAL instead",
                {"column_name": IMPLICIT_KEY_COLUMN, "table_name": table_name},
            )

    col_defs = []
    sequences = []
    definitions = []
    for name, type_token in columns:
        col_def, sequence = column_definition(table_name, name, type_token)
        col_defs.append(col_def)
        definitions.append(f"{name} {type_token}")
        if sequence:
            sequences.append(sequence)

    if not has_serial:
        col_def, sequence = column_definition(
            table_name, IMPLICIT_KEY_COLUMN, "SERIAL", primary_key=True
        )
        col_defs.append(col_def)
        sequences.append(sequence)
        definitions.append(f"{IMPLICIT_KEY_COLUMN} SERIAL PRIMARY KEY")

    statements = [f"CREATE SEQUENCE IF NOT EXISTS {quote(seq)}" for seq in sequences]
    statements.append(f"CREATE TABLE {quote(table_name)} ({', '.join(col_defs)})")
    return statements, definitions


def drop_table_statements(conn: duckdb.DuckDBPyConnection, table_name: str) -> list[str]:
    """
    Statements that drop a table together with the sequences it owns.

    A sequence still referenced by another table's defaults is kept.
    """
    own_sequences = catalog.table_sequences(conn, table_name)
    shared = set()
    for other in catalog.list_tables(conn):
        if other.lower() != table_name.lower():
            shared.update(catalog.table_sequences(conn, other))

    statements = [f"DROP TABLE {quote(table_name)}"]
    statements.extend(
        f"DROP SEQUENCE IF EXISTS {quote(seq)}" for seq in own_sequences if seq not in shared
    )
    return statements


# ============================================
# Table operations
# ============================================


def list_tables() -> list[str]:
    with db.connection() as conn:
        tables = catalog.list_tables(conn)
    metrics.TABLES_TOTAL.set(len(tables))
    return tables


def get_table_info(table_name: str) -> dict[str, Any]:
    """
    Live columns of a table plus the TableMeta record, if the tool created it.

    Raises:
        TableNotFound: if the table is not in the catalog
    """
    validate_identifier(table_name, "table")
    with db.connection() as conn:
        if not catalog.table_exists(conn, table_name):
            raise TableNotFound(table_name)
        columns = catalog.list_columns(conn, table_name)
        meta = metadata_store.get_table_meta(conn, table_name)

    return {
        "name": table_name,
        "columns": [
            {"column_name": col["name"], "data_type": col["data_type"]} for col in columns
        ],
        "meta": meta,
    }


def create_table(table_name: str, column_specs: list[str]) -> dict[str, Any]:
    """
    Create a table and record its TableMeta as one unit of work.

    Raises:
        InvalidIdentifier, MalformedColumnSpec, UnsupportedType, DuplicateColumn:
            on invalid input (nothing is executed)
        TableAlreadyExists: if the name is taken
        ExecutionError: if the engine rejects a statement (nothing is kept)
    """
    statements, definitions = build_create_table(table_name, column_specs)

    with _track("create_table", table_name=table_name):
        try:
            with db.transaction() as conn:
                if catalog.table_exists(conn, table_name):
                    raise TableAlreadyExists(
                        f"Table {table_name} already exists",
                        {"table_name": table_name},
                    )
                for sql in statements:
                    conn.execute(sql)
                # Leftover meta of a table dropped outside this tool
                metadata_store.delete_table_meta(conn, table_name)
                meta = metadata_store.create_table_meta(conn, table_name, column_specs)
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to create table: {e}",
                {"table_name": table_name, "sql": statements[-1]},
            ) from e

    logger.info(
        "table_created",
        table_name=table_name,
        column_count=len(definitions),
        meta_id=meta["id"],
    )

    return {
        "status": "created",
        "table": table_name,
        "meta_id": meta["id"],
        "columns": definitions,
    }


def drop_table(table_name: str) -> None:
    """
    Drop a table and its TableMeta as one unit of work.

    Raises:
        TableNotFound: if the table does not exist
    """
    validate_identifier(table_name, "table")

    with _track("drop_table", table_name=table_name):
        try:
            with db.transaction() as conn:
                if not catalog.table_exists(conn, table_name):
                    raise TableNotFound(table_name)
                metadata_store.delete_table_meta(conn, table_name)
                for sql in drop_table_statements(conn, table_name):
                    conn.execute(sql)
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to drop table: {e}", {"table_name": table_name}
            ) from e

    logger.info("table_dropped", table_name=table_name)


# ============================================
# Column operations
# ============================================


def _require_table(conn: duckdb.DuckDBPyConnection, table_name: str) -> None:
    if not catalog.table_exists(conn, table_name):
        raise TableNotFound(table_name)


def _live_columns(conn: duckdb.DuckDBPyConnection, table_name: str) -> list[dict[str, str]]:
    return [
        {"column_name": col["name"], "data_type": col["data_type"]}
        for col in catalog.list_columns(conn, table_name)
    ]


def _add_column_statements(table_name: str, column_name: str, type_token: str) -> list[str]:
    col_def, sequence = column_definition(table_name, column_name, type_token)
    statements = []
    if sequence:
        statements.append(f"CREATE SEQUENCE IF NOT EXISTS {quote(sequence)}")
    statements.append(f"ALTER TABLE {quote(table_name)} ADD COLUMN {col_def}")
    return statements


def _drop_column_statements(
    conn: duckdb.DuckDBPyConnection, table_name: str, column_name: str
) -> list[str]:
    """
    Statements that drop one column.

    DuckDB refuses DROP COLUMN while the primary key covers a later column,
    which is the case for every user column of a table with the implicit
    ``id`` key. Such a table is rebuilt without the column: its rows are
    parked in a scratch table, the table is recreated under the same name
    with the remaining definitions (defaults and primary key included) and
    the rows are copied back. Sequences behind the defaults are kept.
    """
    plain = [f"ALTER TABLE {quote(table_name)} DROP COLUMN {quote(column_name)}"]

    columns = catalog.list_columns(conn, table_name)
    names = [col["name"].lower() for col in columns]
    if column_name.lower() not in names:
        return plain

    key = catalog.primary_key_columns(conn, table_name)
    key_names = {name.lower() for name in key}
    position = names.index(column_name.lower())
    if column_name.lower() in key_names or not key_names.intersection(names[position + 1:]):
        return plain

    kept = [col for col in columns if col["name"].lower() != column_name.lower()]
    definitions = []
    for col in kept:
        col_def = f"{quote(col['name'])} {col['data_type']}"
        if col["default"] is not None:
            col_def += f" DEFAULT {col['default']}"
        if not col["nullable"]:
            col_def += " NOT NULL"
        definitions.append(col_def)
    definitions.append(f"PRIMARY KEY ({', '.join(quote(name) for name in key)})")

    select_list = ", ".join(quote(col["name"]) for col in kept)
    scratch = quote(f"{table_name}{REBUILD_SUFFIX}")
    table = quote(table_name)
    return [
        f"CREATE TABLE {scratch} AS SELECT {select_list} FROM {table}",
        f"DROP TABLE {table}",
        f"CREATE TABLE {table} ({', '.join(definitions)})",
        f"INSERT INTO {table} ({select_list}) SELECT {select_list} FROM {scratch}",
        f"DROP TABLE {scratch}",
    ]


def alter_table(
    table_name: str, action: str, column_name: str, type_token: str | None = None
) -> dict[str, Any]:
    """
    Add or drop one column. TableMeta is left as it was.

    Args:
        table_name: Table to alter
        action: "add" or "drop"
        column_name: Column to add or drop
        type_token: Column type, required for "add"
    """
    validate_identifier(table_name, "table")
    validate_identifier(column_name, "column")

    action = (action or "").strip().lower()
    if action not in ALTER_ACTIONS:
        raise InvalidRequest(
            f"Invalid action: {action!r}. Use 'add' or 'drop'",
            {"action": action, "allowed_actions": list(ALTER_ACTIONS)},
        )

    if action == "add":
        if not type_token:
            raise InvalidRequest(
                "Column type is required for action 'add'",
                {"column_name": column_name},
            )
        statements = _add_column_statements(table_name, column_name, normalize_type(type_token))

    sql = None
    with _track("alter_table", table_name=table_name, action=action, column_name=column_name):
        try:
            with db.transaction() as conn:
                _require_table(conn, table_name)
                if action == "drop":
                    statements = _drop_column_statements(conn, table_name, column_name)
                for sql in statements:
                    conn.execute(sql)
                columns = _live_columns(conn, table_name)
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to alter table: {e}",
                {"table_name": table_name, "sql": sql},
            ) from e

    logger.info(
        "table_altered",
        table_name=table_name,
        action=action,
        column_name=column_name,
        column_type=type_token,
    )
    return {"name": table_name, "columns": columns}


def add_column(table_name: str, column_name: str, type_token: str) -> dict[str, Any]:
    """
    Add a column, refusing names the table already has.

    Raises:
        ColumnAlreadyExists: if the column exists (case-insensitive)
    """
    validate_identifier(table_name, "table")
    validate_identifier(column_name, "column")
    statements = _add_column_statements(table_name, column_name, normalize_type(type_token))

    with _track("add_column", table_name=table_name, column_name=column_name):
        try:
            with db.transaction() as conn:
                _require_table(conn, table_name)
                existing = [col["name"] for col in catalog.list_columns(conn, table_name)]
                if column_name.lower() in {name.lower() for name in existing}:
                    raise ColumnAlreadyExists(
                        f"Column {column_name} already exists in table {table_name}",
                        {"column_name": column_name, "existing_columns": existing},
                    )
                for sql in statements:
                    conn.execute(sql)
                columns = _live_columns(conn, table_name)
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to add column: {e}",
                {"table_name": table_name, "column_name": column_name},
            ) from e

    logger.info(
        "column_added",
        table_name=table_name,
        column_name=column_name,
        column_type=type_token,
    )
    return {"name": table_name, "columns": columns}


def drop_column(table_name: str, column_name: str) -> dict[str, Any]:
    """Drop a column; a missing column is reported by the engine itself."""
    validate_identifier(table_name, "table")
    validate_identifier(column_name, "column")

    with _track("drop_column", table_name=table_name, column_name=column_name):
        try:
            with db.transaction() as conn:
                _require_table(conn, table_name)
                for sql in _drop_column_statements(conn, table_name, column_name):
                    conn.execute(sql)
                columns = _live_columns(conn, table_name)
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to drop column: {e}",
                {"table_name": table_name, "column_name": column_name},
            ) from e

    logger.info("column_dropped", table_name=table_name, column_name=column_name)
    return {"name": table_name, "columns": columns}
