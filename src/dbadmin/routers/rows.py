"""Row endpoints: browse, insert, update, delete and single-row snapshots."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, status

from dbadmin import rows as row_ops
from dbadmin.models.responses import (
    ErrorResponse,
    RestoreRowRequest,
    RowBackupResponse,
    RowCreatedResponse,
    RowsDeletedResponse,
    RowsUpdatedResponse,
    TableDataResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/tables", tags=["rows"])


@router.get(
    "/{table_name}/data",
    response_model=TableDataResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get table data",
    description="All rows of a table with its column names in table order.",
)
async def get_table_data(table_name: str) -> TableDataResponse:
    return TableDataResponse(**row_ops.get_table_data(table_name))


@router.post(
    "/{table_name}/rows",
    response_model=RowCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Add row",
    description="Insert a row; omitted columns take their defaults.",
)
async def add_row(
    table_name: str, row: dict[str, Any] = Body(...)
) -> RowCreatedResponse:
    stored = row_ops.add_row(table_name, row)
    return RowCreatedResponse(status="created", row=stored)


@router.put(
    "/{table_name}/rows/{row_id}",
    response_model=RowsUpdatedResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Update row",
    description="Update the supplied columns of the row with the given primary key.",
)
async def update_row(
    table_name: str, row_id: str, row: dict[str, Any] = Body(...)
) -> RowsUpdatedResponse:
    return RowsUpdatedResponse(updated=row_ops.update_row(table_name, row_id, row))


@router.delete(
    "/{table_name}/rows/{row_id}",
    response_model=RowsDeletedResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete row",
    description="Delete the row with the given primary key. Unknown ids delete nothing.",
)
async def delete_row(table_name: str, row_id: str) -> RowsDeletedResponse:
    return RowsDeletedResponse(deleted=row_ops.delete_row(table_name, row_id))


@router.get(
    "/{table_name}/rows/{row_id}/backup",
    response_model=RowBackupResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Back up row",
    description="Snapshot one row as JSON.",
)
async def backup_row(table_name: str, row_id: str) -> RowBackupResponse:
    return RowBackupResponse(**row_ops.backup_row(table_name, row_id))


@router.post(
    "/{table_name}/rows/restore",
    response_model=RowsUpdatedResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Restore row",
    description="Write a row snapshot back by id. A deleted row is not recreated.",
)
async def restore_row(table_name: str, request: RestoreRowRequest) -> RowsUpdatedResponse:
    return RowsUpdatedResponse(
        updated=row_ops.restore_row(table_name, str(request.id), request.data)
    )
