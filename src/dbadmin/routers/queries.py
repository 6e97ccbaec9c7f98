"""Free-form query endpoints and the saved-query history."""

import time

import structlog
from fastapi import APIRouter

from dbadmin import queries
from dbadmin.models.responses import (
    ErrorResponse,
    QueryExecuteResponse,
    QueryRequest,
    SavedQueryResponse,
    SaveQueryRequest,
    SuccessResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/queries", tags=["queries"])


@router.post(
    "/execute",
    response_model=QueryExecuteResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Execute query",
    description="Run SQL and return its rows. Text containing DROP or DELETE is refused.",
)
async def execute_query(request: QueryRequest) -> QueryExecuteResponse:
    start_time = time.time()
    result = queries.execute_query(request.query)
    logger.info(
        "execute_query_success",
        row_count=len(result["data"]),
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return QueryExecuteResponse(**result)


@router.post(
    "/save",
    response_model=SavedQueryResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Save query",
    description="Save query text, or bump the usage stats of an identical saved query.",
)
async def save_query(request: SaveQueryRequest) -> SavedQueryResponse:
    return SavedQueryResponse(**queries.save_query(request.query, request.name))


@router.get(
    "/history",
    response_model=list[SavedQueryResponse],
    summary="Query history",
    description="Saved queries, most recently used first.",
)
async def query_history() -> list[SavedQueryResponse]:
    return [SavedQueryResponse(**saved) for saved in queries.list_queries()]


@router.delete(
    "/{query_id}",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete saved query",
)
async def delete_query(query_id: int) -> SuccessResponse:
    queries.delete_query(query_id)
    return SuccessResponse(success=True)
