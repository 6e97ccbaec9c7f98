"""Column management endpoints: add, alter and drop columns."""

import time

import structlog
from fastapi import APIRouter, status

from dbadmin import ddl
from dbadmin.models.responses import (
    AddColumnRequest,
    AlterColumnRequest,
    ErrorResponse,
    TableColumnsResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/tables", tags=["table-schema"])


@router.post(
    "/{table_name}/columns",
    response_model=TableColumnsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Add column",
    description="Add a new column to an existing table.",
)
async def add_column(table_name: str, column: AddColumnRequest) -> TableColumnsResponse:
    """
    Add a new column to an existing table.

    The column is appended after the existing columns; existing rows get
    NULL. Table metadata keeps the columns the table was created with.
    """
    start_time = time.time()
    logger.info(
        "add_column_start",
        table_name=table_name,
        column_name=column.name,
        column_type=column.type,
    )

    result = ddl.add_column(table_name, column.name, column.type)

    logger.info(
        "add_column_success",
        table_name=table_name,
        column_name=column.name,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return TableColumnsResponse(**result)


@router.put(
    "/{table_name}/columns/{column_name}",
    response_model=TableColumnsResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Alter table",
    description="Add (action='add', with type) or drop (action='drop') the named column.",
)
async def alter_column(
    table_name: str, column_name: str, request: AlterColumnRequest
) -> TableColumnsResponse:
    start_time = time.time()
    logger.info(
        "alter_table_start",
        table_name=table_name,
        column_name=column_name,
        action=request.action,
    )

    result = ddl.alter_table(table_name, request.action, column_name, request.type)

    logger.info(
        "alter_table_success",
        table_name=table_name,
        column_name=column_name,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return TableColumnsResponse(**result)


@router.delete(
    "/{table_name}/columns/{column_name}",
    response_model=TableColumnsResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Drop column",
    description="Drop a column. A missing column is reported by the database engine.",
)
async def drop_column(table_name: str, column_name: str) -> TableColumnsResponse:
    start_time = time.time()
    logger.info("drop_column_start", table_name=table_name, column_name=column_name)

    result = ddl.drop_column(table_name, column_name)

    logger.info(
        "drop_column_success",
        table_name=table_name,
        column_name=column_name,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return TableColumnsResponse(**result)
