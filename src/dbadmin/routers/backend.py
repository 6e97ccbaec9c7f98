"""Health check endpoint."""

from pathlib import Path

import duckdb
import structlog
from fastapi import APIRouter, HTTPException, status

from dbadmin.config import settings
from dbadmin.database import db
from dbadmin.models.responses import ErrorResponse, HealthResponse

logger = structlog.get_logger()
router = APIRouter(tags=["backend"])


def _check_path_accessible(path: Path) -> bool:
    """Check if a path exists and is accessible."""
    try:
        return path.exists() and path.is_dir()
    except (OSError, PermissionError):
        return False


def _check_database() -> bool:
    try:
        with db.connection() as conn:
            conn.execute("SELECT 1").fetchone()
        return True
    except (duckdb.Error, OSError) as e:
        logger.warning("health_check_database_failed", error=str(e))
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Health check",
    description="Check if the service is healthy and the database can be queried.",
)
async def health_check() -> HealthResponse:
    """
    Perform health check.

    Validates:
    - Storage directories are accessible
    - The database file answers a trivial query
    """
    path_status = {
        name: _check_path_accessible(path) for name, path in settings.storage_paths.items()
    }
    database_ok = _check_database()
    all_healthy = database_ok and all(path_status.values())

    logger.info(
        "health_check",
        status="healthy" if all_healthy else "unhealthy",
        path_status=path_status,
        database_available=database_ok,
    )

    if not all_healthy:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "storage_unavailable",
                "message": "Storage or database is not accessible",
                "details": {**path_status, "database": database_ok},
            },
        )

    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        database_available=True,
        duckdb_version=duckdb.__version__,
        details=path_status,
    )
