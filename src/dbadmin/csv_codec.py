"""CSV encoding of row sets and the INSERT statements that read them back.

Encoding follows the csv module's default dialect: a header row, then one
line per row, fields quoted when they contain the delimiter or a quote.
"""

import csv
import io
from datetime import date, datetime, time
from typing import Any, Iterable, Iterator

from dbadmin.exceptions import ArchiveFormatError
from dbadmin.identifiers import is_valid_identifier, quote

NULL_TOKEN = "NULL"


def encode_value(value: Any) -> str:
    """Text form of one cell."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def encode_rows(columns: list[str], rows: Iterable[tuple | list]) -> str:
    """Encode a header plus value tuples (in ``columns`` order) as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    for row in rows:
        writer.writerow([encode_value(value) for value in row])
    return buffer.getvalue()


def iter_encoded(columns: list[str], rows: Iterable[tuple | list]) -> Iterator[str]:
    """Yield the same CSV as ``encode_rows`` one line at a time."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def flush() -> str:
        chunk = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return chunk

    writer.writerow(columns)
    yield flush()
    for row in rows:
        writer.writerow([encode_value(value) for value in row])
        yield flush()


def decode(content: bytes | str, source: str = "upload") -> tuple[list[str], list[list[str]]]:
    """
    Parse CSV text into a header and data rows.

    Raises:
        ArchiveFormatError: on undecodable bytes, a missing header, header
            names that are not valid identifiers, or rows whose length
            differs from the header
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ArchiveFormatError(
                f"{source} is not UTF-8 text", {"source": source, "error": str(e)}
            ) from e

    try:
        records = list(csv.reader(io.StringIO(content)))
    except csv.Error as e:
        raise ArchiveFormatError(
            f"Could not parse CSV in {source}: {e}", {"source": source}
        ) from e

    if not records or not records[0]:
        raise ArchiveFormatError(f"{source} has no header row", {"source": source})

    header = records[0]
    for name in header:
        if not is_valid_identifier(name):
            raise ArchiveFormatError(
                f"Invalid column name {name!r} in {source}",
                {"source": source, "column_name": name},
            )
    if len({name.lower() for name in header}) != len(header):
        raise ArchiveFormatError(
            f"Duplicate column names in {source}", {"source": source, "header": header}
        )

    rows = []
    for line_number, record in enumerate(records[1:], start=2):
        if not record:
            continue
        if len(record) != len(header):
            raise ArchiveFormatError(
                f"Row {line_number} of {source} has {len(record)} fields, expected {len(header)}",
                {"source": source, "line": line_number},
            )
        rows.append(record)
    return header, rows


def sql_literal(cell: str) -> str:
    """SQL literal for a decoded cell; the bare token NULL means SQL NULL."""
    if cell == NULL_TOKEN:
        return "NULL"
    return "'" + cell.replace("'", "''") + "'"


def build_text_table(table_name: str, header: list[str]) -> str:
    """CREATE TABLE with every column typed TEXT."""
    columns = ", ".join(f"{quote(name)} TEXT" for name in header)
    return f"CREATE TABLE {quote(table_name)} ({columns})"


def build_insert(table_name: str, header: list[str], record: list[str]) -> str:
    """INSERT of one decoded row with literal values."""
    columns = ", ".join(quote(name) for name in header)
    values = ", ".join(sql_literal(cell) for cell in record)
    return f"INSERT INTO {quote(table_name)} ({columns}) VALUES ({values})"


def bind_cells(record: list[str], text_columns: list[bool]) -> list[str | None]:
    """
    Parameters for inserting a decoded row into an existing typed table.

    NULL cells are always None. Empty cells are None for non-text columns,
    since the encoder writes NULL as an empty cell.
    """
    values: list[str | None] = []
    for cell, is_text in zip(record, text_columns):
        if cell == NULL_TOKEN or (cell == "" and not is_text):
            values.append(None)
        else:
            values.append(cell)
    return values
