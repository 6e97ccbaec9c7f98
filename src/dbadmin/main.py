"""DB Admin API - FastAPI application."""

import logging
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import time
import uuid

from dbadmin.config import settings
from dbadmin.routers import backend, backup, export, metrics, queries, rows, table_schema, tables
from dbadmin.database import db
from dbadmin.exceptions import DbAdminError
from dbadmin.middleware.metrics import MetricsMiddleware, normalize_path
from dbadmin.metrics import ERROR_COUNT


def setup_logging() -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if not settings.debug else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if not settings.debug else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger = structlog.get_logger()
    logger.info(
        "application_startup",
        version=settings.api_version,
        debug=settings.debug,
        data_dir=str(settings.data_dir),
    )

    try:
        db.initialize()
        logger.info("database_initialized", path=str(settings.database_path))
    except Exception as e:
        logger.error("database_init_failed", error=str(e), exc_info=True)
        raise

    yield

    logger.info("application_shutdown")


# Setup logging before creating app
setup_logging()
logger = structlog.get_logger()

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
Web administration API for a DuckDB database.

- Table management: create, describe, alter and drop tables
- Row browsing and editing by primary key, with single-row snapshots
- Free-form SQL with a saved-query history and CSV export
- Backup and restore of single tables (CSV) or the whole database (ZIP)

Errors are returned as `{"detail": {"error", "message", "details"}}`.
    """,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add metrics middleware (for Prometheus request instrumentation)
app.add_middleware(MetricsMiddleware)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log all requests with timing and request ID."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    start_time = time.perf_counter()

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
    )

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(DbAdminError)
async def dbadmin_error_handler(request: Request, exc: DbAdminError):
    """Convert domain errors into their status code and error body."""
    endpoint = normalize_path(request.url.path)
    ERROR_COUNT.labels(type=exc.error, endpoint=endpoint).inc()

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.error,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    endpoint = normalize_path(request.url.path)
    error_type = type(exc).__name__
    ERROR_COUNT.labels(type=error_type, endpoint=endpoint).inc()

    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=error_type,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": str(exc) if settings.debug else "An internal error occurred",
        },
    )


# Include routers
app.include_router(backend.router)
app.include_router(metrics.router)
app.include_router(tables.router, prefix=settings.api_prefix)
app.include_router(table_schema.router, prefix=settings.api_prefix)
app.include_router(rows.router, prefix=settings.api_prefix)
app.include_router(backup.router, prefix=settings.api_prefix)
app.include_router(export.router, prefix=settings.api_prefix)
app.include_router(queries.router, prefix=settings.api_prefix)


# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - points at health check and docs."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "health": "/health",
        "docs": "/docs" if settings.debug else None,
    }


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "dbadmin.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
