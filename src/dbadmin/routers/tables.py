"""Table management endpoints: create, list, describe and drop tables."""

import time

import structlog
from fastapi import APIRouter, status

from dbadmin import ddl
from dbadmin.models.responses import (
    CreateTableRequest,
    CreateTableResponse,
    ErrorResponse,
    TableInfoResponse,
    TableStatusResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/tables", tags=["tables"])


@router.post(
    "",
    response_model=CreateTableResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Create table",
    description="Create a table from 'name:TYPE' column specs and record its metadata.",
)
async def create_table(request: CreateTableRequest) -> CreateTableResponse:
    """
    Create a new table.

    The table and its metadata record are written in one transaction.
    When no column is SERIAL an ``id SERIAL PRIMARY KEY`` column is appended.
    """
    start_time = time.time()
    logger.info("create_table_start", table_name=request.name, columns=request.columns)

    result = ddl.create_table(request.name, request.columns)

    logger.info(
        "create_table_success",
        table_name=request.name,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return CreateTableResponse(**result)


@router.get(
    "",
    response_model=list[str],
    summary="List tables",
    description="List user tables in alphabetical order.",
)
async def list_tables() -> list[str]:
    return ddl.list_tables()


@router.get(
    "/{table_name}/info",
    response_model=TableInfoResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get table info",
    description="Live columns of a table and the metadata recorded when it was created.",
)
async def get_table_info(table_name: str) -> TableInfoResponse:
    return TableInfoResponse(**ddl.get_table_info(table_name))


@router.delete(
    "/{table_name}",
    response_model=TableStatusResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Drop table",
    description="Drop a table together with its metadata and sequences.",
)
async def drop_table(table_name: str) -> TableStatusResponse:
    start_time = time.time()
    logger.info("drop_table_start", table_name=table_name)

    ddl.drop_table(table_name)

    logger.info(
        "drop_table_success",
        table_name=table_name,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return TableStatusResponse(status="dropped", table=table_name)
