"""Prometheus metrics middleware for HTTP request instrumentation.

Collects HTTP request metrics:
- Request count by method, endpoint, status code
- Request duration histogram
- In-flight requests gauge
"""

import time
import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from dbadmin.metrics import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    REQUEST_IN_FLIGHT,
)

logger = structlog.get_logger()

# Segment followed by a path parameter, with the fixed sub-paths it can also take
PARAMETER_SEGMENTS = {
    "tables": ("{table_name}", ()),
    "columns": ("{column_name}", ()),
    "rows": ("{row_id}", ("restore",)),
    "export": ("{table_name}", ("query",)),
    "queries": ("{query_id}", ("execute", "save", "history")),
}


def normalize_path(path: str) -> str:
    """
    Normalize path for metrics labels to avoid high cardinality.

    Examples:
        /api/tables/orders -> /api/tables/{table_name}
        /api/tables/orders/rows/42 -> /api/tables/{table_name}/rows/{row_id}
        /api/tables/orders/rows/restore -> /api/tables/{table_name}/rows/restore
        /api/queries/7 -> /api/queries/{query_id}
    """
    parts = path.strip("/").split("/")
    normalized = []

    i = 0
    while i < len(parts):
        part = parts[i]
        normalized.append(part)

        if part in PARAMETER_SEGMENTS and i + 1 < len(parts):
            placeholder, fixed = PARAMETER_SEGMENTS[part]
            next_part = parts[i + 1]
            normalized.append(next_part if next_part in fixed else placeholder)
            i += 2
            continue

        i += 1

    return "/" + "/".join(normalized) if normalized and normalized != [""] else "/"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that collects Prometheus metrics for HTTP requests.

    Metrics collected:
    - dbadmin_api_requests_total: Counter by method, endpoint, status_code
    - dbadmin_api_request_duration_seconds: Histogram by method, endpoint
    - dbadmin_api_requests_in_flight: Gauge by method
    """

    # Endpoints to skip (internal/debug endpoints)
    SKIP_PATHS = {"/metrics", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method

        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        endpoint = normalize_path(request.url.path)

        REQUEST_IN_FLIGHT.labels(method=method).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.perf_counter() - start_time
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)
            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code
            ).inc()
            REQUEST_IN_FLIGHT.labels(method=method).dec()

        return response
