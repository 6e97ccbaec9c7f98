"""Domain errors raised by the core and converted to JSON responses in main.py.

Every error carries an HTTP status, a machine-readable ``error`` code and a
human-readable message, mirroring the ``{"error", "message", "details"}``
body used by all endpoints.
"""

from typing import Any

from fastapi import status


class DbAdminError(Exception):
    """Base class for all errors the API reports to its callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": self.details}


# ============================================
# Validation errors (nothing reached the database)
# ============================================


class InvalidIdentifier(DbAdminError):
    """Raised when a table or column name is not a safe SQL identifier."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_identifier"


class UnsupportedType(DbAdminError):
    """Raised when a column type token is not in the allow-list."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "unsupported_type"


class MalformedColumnSpec(DbAdminError):
    """Raised when a column spec is not of the form ``name:TYPE``."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "malformed_column_spec"


class DuplicateColumn(DbAdminError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "duplicate_column"


class InvalidRequest(DbAdminError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_request"


class NoPrimaryKey(DbAdminError):
    """Raised when a row operation targets a table without a primary key."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "no_primary_key"


class ArchiveFormatError(DbAdminError):
    """Raised when an uploaded ZIP or CSV cannot be interpreted."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_archive"


class UploadTooLarge(DbAdminError):
    status_code = 413  # Content Too Large
    error = "upload_too_large"


class ForbiddenQuery(DbAdminError):
    """Raised when free-form SQL contains a denylisted token."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden_query"


# ============================================
# Conflicts
# ============================================


class TableAlreadyExists(DbAdminError):
    status_code = status.HTTP_409_CONFLICT
    error = "table_exists"


class ColumnAlreadyExists(DbAdminError):
    status_code = status.HTTP_409_CONFLICT
    error = "column_exists"


# ============================================
# Missing resources
# ============================================


class NotFound(DbAdminError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class TableNotFound(NotFound):
    error = "table_not_found"

    def __init__(self, table_name: str):
        super().__init__(f"Table {table_name} not found", {"table_name": table_name})


class RowNotFound(NotFound):
    error = "row_not_found"

    def __init__(self, table_name: str, row_id: str):
        super().__init__(
            f"Row {row_id} not found in table {table_name}",
            {"table_name": table_name, "row_id": row_id},
        )


class QueryNotFound(NotFound):
    error = "query_not_found"

    def __init__(self, query_id: int):
        super().__init__(f"Saved query {query_id} not found", {"query_id": query_id})


# ============================================
# Engine failures
# ============================================


class ExecutionError(DbAdminError):
    """Wraps a failure reported by the database engine.

    The engine's own error text is passed through to the caller.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "execution_failed"

    def __init__(self, message: str, details: dict[str, Any] | None = None, status_code: int | None = None):
        super().__init__(message, details)
        if status_code is not None:
            self.status_code = status_code
