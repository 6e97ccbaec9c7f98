"""DuckDB database management - connections, catalog access and tool metadata.

Storage layout
==============
- One DuckDB file (settings.database_path) holds everything.
- User tables live in the ``main`` schema and are discovered from the
  catalog (information_schema / duckdb_constraints) on every call.
- The tool's own state (table_meta, saved_queries) lives in the ``_dbadmin``
  schema of the same file, so user DDL and metadata writes can share one
  transaction while never showing up as user tables.
"""

import json
import re
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Generator

import duckdb
import structlog

from dbadmin.config import settings
from dbadmin import metrics

logger = structlog.get_logger()

USER_SCHEMA = "main"
META_SCHEMA = "_dbadmin"

NEXTVAL_PATTERN = re.compile(r"nextval\('([^']+)'")


# ============================================
# Metadata schema
# ============================================

METADATA_SCHEMA = f"""
CREATE SCHEMA IF NOT EXISTS {META_SCHEMA};

-- Columns each table was created with ("name:TYPE" specs, JSON array text)
CREATE TABLE IF NOT EXISTS {META_SCHEMA}.table_meta (
    id VARCHAR PRIMARY KEY,
    name VARCHAR NOT NULL UNIQUE,
    columns VARCHAR NOT NULL DEFAULT '[]',
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

-- Saved free-form SQL with usage statistics
CREATE SEQUENCE IF NOT EXISTS {META_SCHEMA}.saved_queries_seq;

CREATE TABLE IF NOT EXISTS {META_SCHEMA}.saved_queries (
    id BIGINT DEFAULT nextval('{META_SCHEMA}.saved_queries_seq') PRIMARY KEY,
    query VARCHAR NOT NULL,
    name VARCHAR,
    last_used TIMESTAMP NOT NULL,
    use_count INTEGER DEFAULT 1,
    created_at TIMESTAMP NOT NULL
);
"""


def utcnow() -> datetime:
    """Current UTC time as a naive timestamp (DuckDB TIMESTAMP)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def serialize_value(val: Any) -> Any:
    """Serialize a value for JSON response."""
    if val is None:
        return None
    if isinstance(val, (datetime, date, time)):
        return val.isoformat()
    if isinstance(val, (bytes, bytearray, memoryview)):
        return bytes(val).decode("utf-8", errors="replace")
    if isinstance(val, (Decimal, uuid.UUID, timedelta)):
        return str(val)
    if isinstance(val, list):
        return [serialize_value(v) for v in val]
    if isinstance(val, dict):
        return {str(k): serialize_value(v) for k, v in val.items()}
    return val


def result_to_dicts(
    result: duckdb.DuckDBPyConnection, serialize: bool = True
) -> tuple[list[str], list[dict[str, Any]]]:
    """Turn the pending result of ``conn.execute`` into (column names, row dicts).

    Statements that produce no result set yield ``([], [])``.
    """
    if result.description is None:
        return [], []

    columns = [col[0] for col in result.description]
    rows = []
    for row in result.fetchall():
        if serialize:
            rows.append({col: serialize_value(val) for col, val in zip(columns, row)})
        else:
            rows.append(dict(zip(columns, row)))
    return columns, rows


class Database:
    """
    Singleton class for managing the DuckDB database file.

    A fresh connection is opened per operation; DuckDB shares one database
    instance between connections to the same file within the process.
    Note: db_path is read from settings on each access to support testing.
    """

    _instance: "Database | None" = None
    _lock = threading.Lock()

    def __new__(cls) -> "Database":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._init_lock = threading.Lock()
        self._initialized = True

    @property
    def db_path(self) -> Path:
        """Get db path from settings (allows runtime override in tests)."""
        return settings.database_path

    def initialize(self) -> None:
        """Create the database file and the metadata schema if missing."""
        db_path = self.db_path
        with self._init_lock:
            db_path.parent.mkdir(parents=True, exist_ok=True)

            conn = duckdb.connect(str(db_path))
            try:
                conn.execute(METADATA_SCHEMA)
                conn.commit()
                logger.info("metadata_schema_created", path=str(db_path))
            finally:
                conn.close()

    @contextmanager
    def connection(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        Get a connection to the database (autocommit mode).

        Usage:
            with db.connection() as conn:
                conn.execute("SELECT 1")
        """
        conn = duckdb.connect(str(self.db_path))
        metrics.DB_CONNECTIONS_ACTIVE.inc()
        try:
            conn.execute(f"SET threads = {settings.duckdb_threads}")
            conn.execute(f"SET memory_limit = '{settings.duckdb_memory_limit}'")
            yield conn
        finally:
            conn.close()
            metrics.DB_CONNECTIONS_ACTIVE.dec()

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        Run a block as one all-or-nothing unit of work.

        Any exception raised inside the block rolls back every statement
        issued on the yielded connection and is re-raised.

        Usage:
            with db.transaction() as conn:
                conn.execute("CREATE TABLE ...")
                conn.execute("INSERT INTO ...")
        """
        with self.connection() as conn:
            conn.begin()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def size_bytes(self) -> int:
        """Size of the database file on disk (0 if not created yet)."""
        path = self.db_path
        return path.stat().st_size if path.exists() else 0


class Catalog:
    """
    Read-only access to the engine's live catalog for user tables.

    All methods take the connection to use, so they see uncommitted changes
    when called inside a transaction. Name matching is case-insensitive,
    like DuckDB's own identifier resolution.
    """

    def table_exists(self, conn: duckdb.DuckDBPyConnection, table_name: str) -> bool:
        row = conn.execute(
            """
            SELECT COUNT(*)
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = ?
              AND lower(table_name) = lower(?)
              AND table_type = 'BASE TABLE'
            """,
            [USER_SCHEMA, table_name],
        ).fetchone()
        return bool(row and row[0])

    def list_tables(self, conn: duckdb.DuckDBPyConnection) -> list[str]:
        """Return user table names in alphabetical order."""
        result = conn.execute(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = ?
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            [USER_SCHEMA],
        ).fetchall()
        return [row[0] for row in result]

    def list_columns(
        self, conn: duckdb.DuckDBPyConnection, table_name: str
    ) -> list[dict[str, Any]]:
        """Return columns in ordinal order as dicts with name, data_type, default, nullable."""
        result = conn.execute(
            """
            SELECT column_name, data_type, column_default, is_nullable
            FROM information_schema.columns
            WHERE table_catalog = current_database()
              AND table_schema = ?
              AND lower(table_name) = lower(?)
            ORDER BY ordinal_position
            """,
            [USER_SCHEMA, table_name],
        ).fetchall()
        return [
            {
                "name": row[0],
                "data_type": row[1],
                "default": row[2],
                "nullable": row[3] == "YES",
            }
            for row in result
        ]

    def primary_key_columns(
        self, conn: duckdb.DuckDBPyConnection, table_name: str
    ) -> list[str]:
        row = conn.execute(
            """
            SELECT constraint_column_names
            FROM duckdb_constraints()
            WHERE database_name = current_database()
              AND schema_name = ?
              AND lower(table_name) = lower(?)
              AND constraint_type = 'PRIMARY KEY'
            """,
            [USER_SCHEMA, table_name],
        ).fetchone()
        if not row or not row[0]:
            return []
        return list(row[0])

    def table_sequences(
        self, conn: duckdb.DuckDBPyConnection, table_name: str
    ) -> list[str]:
        """Return sequences referenced by the table's column defaults."""
        sequences = []
        for column in self.list_columns(conn, table_name):
            match = NEXTVAL_PATTERN.search(column["default"] or "")
            if match and match.group(1) not in sequences:
                sequences.append(match.group(1))
        return sequences


class MetadataStore:
    """
    CRUD for the tool's own records: TableMeta and SavedQuery.

    Methods take the connection to use so TableMeta writes can join the
    transaction of the DDL they describe.
    """

    # ========================================
    # TableMeta
    # ========================================

    def get_table_meta(
        self, conn: duckdb.DuckDBPyConnection, name: str
    ) -> dict[str, Any] | None:
        row = conn.execute(
            f"""
            SELECT id, name, columns, created_at, updated_at
            FROM {META_SCHEMA}.table_meta
            WHERE lower(name) = lower(?)
            """,
            [name],
        ).fetchone()
        return self._row_to_meta_dict(row)

    def list_table_meta(self, conn: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
        rows = conn.execute(
            f"""
            SELECT id, name, columns, created_at, updated_at
            FROM {META_SCHEMA}.table_meta
            ORDER BY name
            """
        ).fetchall()
        return [self._row_to_meta_dict(row) for row in rows]

    def create_table_meta(
        self, conn: duckdb.DuckDBPyConnection, name: str, columns: list[str]
    ) -> dict[str, Any]:
        meta_id = str(uuid.uuid4())
        now = utcnow()
        conn.execute(
            f"""
            INSERT INTO {META_SCHEMA}.table_meta (id, name, columns, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            [meta_id, name, json.dumps(columns), now, now],
        )
        return {
            "id": meta_id,
            "name": name,
            "columns": list(columns),
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }

    def delete_table_meta(self, conn: duckdb.DuckDBPyConnection, name: str) -> None:
        conn.execute(
            f"DELETE FROM {META_SCHEMA}.table_meta WHERE lower(name) = lower(?)",
            [name],
        )

    def replace_table_meta(
        self, conn: duckdb.DuckDBPyConnection, metas: list[dict[str, Any]]
    ) -> int:
        """Delete every TableMeta row and insert ``metas`` in their place.

        Archived ids and timestamps are kept when present.
        """
        conn.execute(f"DELETE FROM {META_SCHEMA}.table_meta")
        now = utcnow()
        for meta in metas:
            conn.execute(
                f"""
                INSERT INTO {META_SCHEMA}.table_meta (id, name, columns, created_at, updated_at)
                VALUES (?, ?, ?, CAST(? AS TIMESTAMP), CAST(? AS TIMESTAMP))
                """,
                [
                    meta.get("id") or str(uuid.uuid4()),
                    meta["name"],
                    json.dumps(meta.get("columns") or []),
                    meta.get("created_at") or now.isoformat(),
                    meta.get("updated_at") or now.isoformat(),
                ],
            )
        return len(metas)

    def _row_to_meta_dict(self, row: tuple | None) -> dict[str, Any] | None:
        if not row:
            return None
        return {
            "id": row[0],
            "name": row[1],
            "columns": json.loads(row[2]) if row[2] else [],
            "created_at": row[3].isoformat() if row[3] else None,
            "updated_at": row[4].isoformat() if row[4] else None,
        }

    # ========================================
    # SavedQuery
    # ========================================

    def find_saved_query(
        self, conn: duckdb.DuckDBPyConnection, query_text: str
    ) -> dict[str, Any] | None:
        row = conn.execute(
            f"""
            SELECT id, query, name, last_used, use_count, created_at
            FROM {META_SCHEMA}.saved_queries
            WHERE query = ?
            ORDER BY id
            LIMIT 1
            """,
            [query_text],
        ).fetchone()
        return self._row_to_query_dict(row)

    def get_saved_query(
        self, conn: duckdb.DuckDBPyConnection, query_id: int
    ) -> dict[str, Any] | None:
        row = conn.execute(
            f"""
            SELECT id, query, name, last_used, use_count, created_at
            FROM {META_SCHEMA}.saved_queries
            WHERE id = ?
            """,
            [query_id],
        ).fetchone()
        return self._row_to_query_dict(row)

    def create_saved_query(
        self, conn: duckdb.DuckDBPyConnection, query_text: str, name: str | None
    ) -> dict[str, Any]:
        now = utcnow()
        row = conn.execute(
            f"""
            INSERT INTO {META_SCHEMA}.saved_queries (query, name, last_used, use_count, created_at)
            VALUES (?, ?, ?, 1, ?)
            RETURNING id, query, name, last_used, use_count, created_at
            """,
            [query_text, name, now, now],
        ).fetchone()
        return self._row_to_query_dict(row)

    def touch_saved_query(
        self, conn: duckdb.DuckDBPyConnection, query_id: int, name: str | None = None
    ) -> dict[str, Any]:
        """Record one more use of a saved query, optionally renaming it."""
        row = conn.execute(
            f"""
            UPDATE {META_SCHEMA}.saved_queries
            SET last_used = ?,
                use_count = use_count + 1,
                name = COALESCE(?, name)
            WHERE id = ?
            RETURNING id, query, name, last_used, use_count, created_at
            """,
            [utcnow(), name or None, query_id],
        ).fetchone()
        return self._row_to_query_dict(row)

    def list_saved_queries(self, conn: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
        rows = conn.execute(
            f"""
            SELECT id, query, name, last_used, use_count, created_at
            FROM {META_SCHEMA}.saved_queries
            ORDER BY last_used DESC, id DESC
            """
        ).fetchall()
        return [self._row_to_query_dict(row) for row in rows]

    def delete_saved_query(self, conn: duckdb.DuckDBPyConnection, query_id: int) -> bool:
        row = conn.execute(
            f"DELETE FROM {META_SCHEMA}.saved_queries WHERE id = ? RETURNING id",
            [query_id],
        ).fetchone()
        return row is not None

    def _row_to_query_dict(self, row: tuple | None) -> dict[str, Any] | None:
        if not row:
            return None
        return {
            "id": row[0],
            "query": row[1],
            "name": row[2],
            "last_used": row[3].isoformat() if row[3] else None,
            "use_count": row[4],
            "created_at": row[5].isoformat() if row[5] else None,
        }


# Global instances
db = Database()
catalog = Catalog()
metadata_store = MetadataStore()
