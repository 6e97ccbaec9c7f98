"""Backup and restore of user tables as CSV files and ZIP archives.

Archive layout
==============
- ``<table>.csv`` for every user table: header row plus data rows
- ``_metadata.json``: the TableMeta records as a JSON array

Full backup is best-effort per table. Full restore and single-table restore
each run as one transaction: a failure leaves the database untouched.
"""

import io
import json
import time
import zipfile
from contextlib import contextmanager
from typing import Any, Generator

import duckdb
import structlog

from dbadmin import csv_codec, metrics
from dbadmin.database import catalog, db, metadata_store, utcnow
from dbadmin.ddl import drop_table_statements
from dbadmin.exceptions import ArchiveFormatError, ExecutionError, TableNotFound
from dbadmin.identifiers import is_valid_identifier, quote, validate_identifier

logger = structlog.get_logger()

METADATA_ENTRY = "_metadata.json"
TEXT_TYPES = ("VARCHAR", "TEXT")


@contextmanager
def _track(kind: str) -> Generator[None, None, None]:
    start_time = time.time()
    try:
        yield
    except Exception:
        metrics.BACKUP_OPERATIONS_TOTAL.labels(kind=kind, status="failed").inc()
        raise
    finally:
        metrics.BACKUP_DURATION.labels(kind=kind).observe(time.time() - start_time)
    metrics.BACKUP_OPERATIONS_TOTAL.labels(kind=kind, status="success").inc()


def read_table(
    conn: duckdb.DuckDBPyConnection, table_name: str
) -> tuple[list[str], list[tuple]]:
    """Column names in catalog order and all rows as value tuples."""
    columns = [col["name"] for col in catalog.list_columns(conn, table_name)]
    select_list = ", ".join(quote(col) for col in columns)
    rows = conn.execute(f"SELECT {select_list} FROM {quote(table_name)}").fetchall()
    return columns, rows


def export_table(table_name: str) -> tuple[list[str], list[tuple]]:
    """
    Load a table for CSV export.

    Raises:
        TableNotFound: if the table does not exist
    """
    validate_identifier(table_name, "table")
    with db.connection() as conn:
        if not catalog.table_exists(conn, table_name):
            raise TableNotFound(table_name)
        try:
            columns, rows = read_table(conn, table_name)
        except duckdb.Error as e:
            raise ExecutionError(f"Failed to export table: {e}", {"table_name": table_name}) from e

    metrics.EXPORT_ROWS_TOTAL.inc(len(rows))
    logger.info("table_exported", table_name=table_name, row_count=len(rows))
    return columns, rows


def table_backup_filename(table_name: str) -> str:
    return f"{table_name}_backup_{utcnow().strftime('%Y%m%d_%H%M%S')}.csv"


# ============================================
# Full database
# ============================================


def full_backup() -> bytes:
    """
    Build a ZIP archive of every user table plus the TableMeta records.

    A table that fails to export is logged and left out.
    """
    buffer = io.BytesIO()
    exported = []

    with _track("full_backup"):
        with db.connection() as conn, zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for table_name in catalog.list_tables(conn):
                try:
                    columns, rows = read_table(conn, table_name)
                except duckdb.Error as e:
                    logger.warning(
                        "full_backup_table_failed", table_name=table_name, error=str(e)
                    )
                    continue
                archive.writestr(f"{table_name}.csv", csv_codec.encode_rows(columns, rows))
                metrics.EXPORT_ROWS_TOTAL.inc(len(rows))
                exported.append(table_name)

            metas = metadata_store.list_table_meta(conn)
            archive.writestr(METADATA_ENTRY, json.dumps(metas, indent=2))

    logger.info(
        "full_backup_completed",
        tables=exported,
        metadata_count=len(metas),
        size_bytes=buffer.tell(),
    )
    return buffer.getvalue()


def _read_archive(
    content: bytes,
) -> tuple[list[tuple[str, list[str], list[list[str]]]], list[dict[str, Any]] | None]:
    """Decode every table entry and the metadata entry before anything is applied."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(f"Upload is not a ZIP archive: {e}") from e

    tables = []
    metas = None
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            name = info.filename
            if name == METADATA_ENTRY:
                try:
                    metas = json.loads(archive.read(info).decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError) as e:
                    raise ArchiveFormatError(
                        f"Unreadable {METADATA_ENTRY}: {e}", {"entry": name}
                    ) from e
                if not isinstance(metas, list) or not all(
                    isinstance(meta, dict) and isinstance(meta.get("name"), str)
                    for meta in metas
                ):
                    raise ArchiveFormatError(
                        f"{METADATA_ENTRY} must be a list of table records", {"entry": name}
                    )
                continue
            if not name.endswith(".csv"):
                continue

            table_name = name[: -len(".csv")]
            if not is_valid_identifier(table_name):
                raise ArchiveFormatError(
                    f"Invalid table name in archive entry {name!r}", {"entry": name}
                )
            header, rows = csv_codec.decode(archive.read(info), source=name)
            tables.append((table_name, header, rows))

    return tables, metas


def full_restore(content: bytes) -> dict[str, Any]:
    """
    Replace tables (and TableMeta) with the contents of a backup archive.

    Every table in the archive is dropped if present and recreated with TEXT
    columns from its CSV header. All of it runs in one transaction.

    Raises:
        ArchiveFormatError: if the archive cannot be interpreted (nothing applied)
        ExecutionError: if the engine rejects a statement (nothing applied)
    """
    tables, metas = _read_archive(content)
    restored = []
    row_count = 0

    with _track("full_restore"):
        try:
            with db.transaction() as conn:
                for table_name, header, rows in tables:
                    if catalog.table_exists(conn, table_name):
                        for sql in drop_table_statements(conn, table_name):
                            conn.execute(sql)
                    conn.execute(csv_codec.build_text_table(table_name, header))
                    for record in rows:
                        conn.execute(csv_codec.build_insert(table_name, header, record))
                    restored.append(table_name)
                    row_count += len(rows)
                    logger.debug("full_restore_table", table_name=table_name, row_count=len(rows))

                metadata_restored = 0
                if metas is not None:
                    metadata_restored = metadata_store.replace_table_meta(conn, metas)
        except duckdb.Error as e:
            raise ExecutionError(f"Restore failed: {e}", {"tables": restored}) from e

    metrics.IMPORT_ROWS_TOTAL.inc(row_count)
    logger.info(
        "full_restore_completed",
        tables=restored,
        row_count=row_count,
        metadata_restored=metadata_restored,
    )
    return {"status": "restored", "tables": restored, "metadata_restored": metadata_restored}


# ============================================
# Single table
# ============================================


def backup_table(table_name: str) -> tuple[str, list[str], list[tuple]]:
    """Return (attachment filename, columns, rows) for a table backup."""
    with _track("table_backup"):
        columns, rows = export_table(table_name)
    return table_backup_filename(table_name), columns, rows


def restore_table(table_name: str, content: bytes) -> dict[str, Any]:
    """
    Empty a table and reload it from a CSV upload in one transaction.

    The table keeps its column types; the CSV header must only name
    columns the table has.
    """
    validate_identifier(table_name, "table")
    header, rows = csv_codec.decode(content, source=f"{table_name}.csv")

    with _track("table_restore"):
        try:
            with db.transaction() as conn:
                if not catalog.table_exists(conn, table_name):
                    raise TableNotFound(table_name)

                live = {
                    col["name"].lower(): col["data_type"].upper()
                    for col in catalog.list_columns(conn, table_name)
                }
                unknown = [name for name in header if name.lower() not in live]
                if unknown:
                    raise ArchiveFormatError(
                        f"CSV columns not in table {table_name}: {', '.join(unknown)}",
                        {"table_name": table_name, "unknown_columns": unknown},
                    )
                text_columns = [live[name.lower()].startswith(TEXT_TYPES) for name in header]

                conn.execute(f"DELETE FROM {quote(table_name)}")
                columns = ", ".join(quote(name) for name in header)
                placeholders = ", ".join("?" for _ in header)
                sql = f"INSERT INTO {quote(table_name)} ({columns}) VALUES ({placeholders})"
                for record in rows:
                    conn.execute(sql, csv_codec.bind_cells(record, text_columns))
        except duckdb.Error as e:
            raise ExecutionError(
                f"Failed to restore table: {e}", {"table_name": table_name}
            ) from e

    metrics.IMPORT_ROWS_TOTAL.inc(len(rows))
    logger.info("table_restored", table_name=table_name, row_count=len(rows))
    return {"status": "restored", "table": table_name, "rows": len(rows)}
