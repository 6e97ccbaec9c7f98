"""Prometheus metrics endpoint router.

Exposes /metrics endpoint for Prometheus scraping.
Also refreshes the storage gauges on each scrape.
"""

import duckdb
import structlog
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from dbadmin.config import settings
from dbadmin.database import catalog, db
from dbadmin.metrics import DATABASE_SIZE_BYTES, TABLES_TOTAL, set_service_info

logger = structlog.get_logger()

router = APIRouter(tags=["metrics"])


def collect_storage_metrics() -> None:
    """Refresh table count and database size; failures only skip the refresh."""
    try:
        with db.connection() as conn:
            TABLES_TOTAL.set(len(catalog.list_tables(conn)))
        DATABASE_SIZE_BYTES.set(db.size_bytes())
    except (duckdb.Error, OSError) as e:
        logger.error("metrics_collection_failed", error=str(e))


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics endpoint",
    description="Returns metrics in Prometheus text format for scraping.",
)
async def get_metrics():
    """
    Expose Prometheus metrics.

    Returns metrics in text/plain format using Prometheus exposition format.
    """
    set_service_info(version=settings.api_version, duckdb_version=duckdb.__version__)
    collect_storage_metrics()

    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
