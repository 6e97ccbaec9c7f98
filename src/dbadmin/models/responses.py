"""Request and response models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(description="API version")
    database_available: bool = Field(description="Whether the database file can be queried")
    duckdb_version: str | None = Field(default=None, description="Embedded DuckDB version")
    details: dict[str, bool] | None = Field(
        default=None, description="Detailed status of each storage path"
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Error message")
    details: dict | None = Field(default=None, description="Additional error details")


# ============================================
# Table models
# ============================================


class CreateTableRequest(BaseModel):
    """Request to create a table."""

    name: str = Field(description="Table name (letters, digits and _; not starting with a digit)")
    columns: list[str] = Field(
        default_factory=list,
        description="Column specs as 'name:TYPE'. An 'id SERIAL PRIMARY KEY' column is "
        "appended when no column is SERIAL",
    )


class CreateTableResponse(BaseModel):
    status: str = Field(description="Always 'created'")
    table: str = Field(description="Table name")
    meta_id: str = Field(description="Identifier of the stored table metadata")
    columns: list[str] = Field(description="Generated column definitions")


class TableMetaResponse(BaseModel):
    """Columns a table was created with, as recorded by this service."""

    id: str
    name: str
    columns: list[str] = Field(description="Column specs exactly as submitted on create")
    created_at: str | None = None
    updated_at: str | None = None


class ColumnInfo(BaseModel):
    column_name: str
    data_type: str


class TableInfoResponse(BaseModel):
    """Live shape of a table plus its creation metadata."""

    name: str = Field(description="Table name")
    columns: list[ColumnInfo] = Field(description="Columns from the live catalog")
    meta: TableMetaResponse | None = Field(
        default=None, description="Creation metadata, null for tables created elsewhere"
    )


class TableColumnsResponse(BaseModel):
    name: str = Field(description="Table name")
    columns: list[ColumnInfo] = Field(description="Columns after the change")


class TableStatusResponse(BaseModel):
    status: str
    table: str


class AddColumnRequest(BaseModel):
    """Request to add a column."""

    name: str = Field(description="Column name")
    type: str = Field(description="Column type token, e.g. TEXT or INTEGER")


class AlterColumnRequest(BaseModel):
    """Request to add or drop the column named in the path."""

    action: str = Field(description="'add' or 'drop'")
    type: str | None = Field(default=None, description="Column type, required for 'add'")


# ============================================
# Row models
# ============================================


class TableDataResponse(BaseModel):
    columns: list[str] = Field(description="Column names in table order")
    rows: list[dict[str, Any]] = Field(description="Rows as column -> value maps")


class RowCreatedResponse(BaseModel):
    status: str = Field(description="Always 'created'")
    row: dict[str, Any] = Field(description="The stored row including generated values")


class RowsUpdatedResponse(BaseModel):
    updated: int = Field(description="Number of rows affected")


class RowsDeletedResponse(BaseModel):
    deleted: int = Field(description="Number of rows affected (0 for an unknown id)")


class RowBackupResponse(BaseModel):
    """Single-row snapshot."""

    table: str
    id: str
    data: dict[str, Any]
    backed_up_at: str


class RestoreRowRequest(BaseModel):
    id: str | int = Field(description="Primary key value of the row")
    data: dict[str, Any] = Field(description="Column values to write back")


# ============================================
# Backup models
# ============================================


class FullRestoreResponse(BaseModel):
    status: str = Field(description="Always 'restored'")
    tables: list[str] = Field(description="Tables recreated from the archive")
    metadata_restored: int = Field(description="Number of table metadata records restored")


class TableRestoreResponse(BaseModel):
    status: str = Field(description="Always 'restored'")
    table: str
    rows: int = Field(description="Number of rows inserted")


# ============================================
# Query models
# ============================================


class QueryRequest(BaseModel):
    query: str = Field(description="SQL text")


class SaveQueryRequest(BaseModel):
    query: str = Field(description="SQL text")
    name: str | None = Field(default=None, description="Display name")


class QueryInfo(BaseModel):
    """Usage stats of the saved query matching the executed text."""

    id: int
    useCount: int
    lastUsed: str | None = None


class QueryExecuteResponse(BaseModel):
    data: list[dict[str, Any]] = Field(description="Result rows")
    queryInfo: QueryInfo | None = Field(
        default=None, description="Stats of the matching saved query, if any"
    )


class SavedQueryResponse(BaseModel):
    id: int
    query: str
    name: str | None = None
    lastUsed: str | None = None
    useCount: int


class SuccessResponse(BaseModel):
    success: bool
