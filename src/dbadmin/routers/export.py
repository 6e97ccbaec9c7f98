"""CSV export endpoints for tables and free-form query results."""

import structlog
from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from dbadmin import backup, queries
from dbadmin.models.responses import ErrorResponse, QueryRequest
from dbadmin.routers.backup import csv_attachment

logger = structlog.get_logger()
router = APIRouter(prefix="/export", tags=["export"])


@router.post(
    "/query",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/csv": {}}},
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
    summary="Export query results",
    description="Run a query and download its result set as CSV.",
)
async def export_query(request: QueryRequest) -> StreamingResponse:
    columns, rows = queries.export_query(request.query)
    return csv_attachment("query_results.csv", columns, rows)


@router.get(
    "/{table_name}",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/csv": {}}}, 404: {"model": ErrorResponse}},
    summary="Export table",
    description="Download all rows of a table as CSV.",
)
async def export_table(table_name: str) -> StreamingResponse:
    columns, rows = backup.export_table(table_name)
    return csv_attachment(f"{table_name}.csv", columns, rows)
