"""Backup and restore endpoints for the whole database and single tables."""

import time

import structlog
from fastapi import APIRouter, File, UploadFile
from fastapi.responses import Response, StreamingResponse

from dbadmin import backup, csv_codec
from dbadmin.config import settings
from dbadmin.exceptions import InvalidRequest, UploadTooLarge
from dbadmin.models.responses import (
    ErrorResponse,
    FullRestoreResponse,
    TableRestoreResponse,
)

logger = structlog.get_logger()
router = APIRouter(tags=["backup"])

CHUNK_SIZE = 1024 * 1024


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file into memory, enforcing the configured size limit."""
    data = bytearray()
    while chunk := await file.read(CHUNK_SIZE):
        data.extend(chunk)
        if len(data) > settings.max_upload_bytes:
            raise UploadTooLarge(
                f"Upload exceeds maximum size of {settings.max_upload_bytes} bytes",
                {"max_size_bytes": settings.max_upload_bytes, "filename": file.filename},
            )
    return bytes(data)


def _pick_upload(*candidates: UploadFile | None) -> UploadFile:
    for upload in candidates:
        if upload is not None:
            return upload
    raise InvalidRequest("No file uploaded", {"fields": ["file", "backup"]})


def csv_attachment(filename: str, columns: list[str], rows: list[tuple]) -> StreamingResponse:
    return StreamingResponse(
        csv_codec.iter_encoded(columns, rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================
# Full database
# ============================================


@router.get(
    "/backup",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}}},
    summary="Back up database",
    description="ZIP archive with one CSV per table plus _metadata.json.",
)
async def backup_database() -> Response:
    start_time = time.time()
    logger.info("full_backup_start")

    archive = backup.full_backup()

    logger.info(
        "full_backup_success",
        size_bytes=len(archive),
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{settings.backup_filename}"'},
    )


@router.post(
    "/restore",
    response_model=FullRestoreResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Restore database",
    description="Recreate every table in an uploaded backup archive (multipart field 'backup').",
)
async def restore_database(
    backup_file: UploadFile | None = File(default=None, alias="backup"),
    file: UploadFile | None = File(default=None),
) -> FullRestoreResponse:
    """
    Restore from a backup archive.

    Tables in the archive are dropped and recreated with TEXT columns.
    Nothing is applied unless the whole archive restores cleanly.
    """
    upload = _pick_upload(backup_file, file)
    start_time = time.time()
    logger.info("full_restore_start", filename=upload.filename)

    content = await read_upload(upload)
    result = backup.full_restore(content)

    logger.info(
        "full_restore_success",
        tables=result["tables"],
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return FullRestoreResponse(**result)


# ============================================
# Single table
# ============================================


@router.get(
    "/tables/{table_name}/backup",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/csv": {}}}, 404: {"model": ErrorResponse}},
    summary="Back up table",
    description="CSV export of one table as a timestamped attachment.",
)
async def backup_table(table_name: str) -> StreamingResponse:
    filename, columns, rows = backup.backup_table(table_name)
    return csv_attachment(filename, columns, rows)


@router.post(
    "/tables/{table_name}/restore",
    response_model=TableRestoreResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Restore table",
    description="Replace all rows of a table with an uploaded CSV (multipart field 'file').",
)
async def restore_table(
    table_name: str,
    file: UploadFile | None = File(default=None),
    backup_file: UploadFile | None = File(default=None, alias="backup"),
) -> TableRestoreResponse:
    upload = _pick_upload(file, backup_file)
    start_time = time.time()
    logger.info("table_restore_start", table_name=table_name, filename=upload.filename)

    content = await read_upload(upload)
    result = backup.restore_table(table_name, content)

    logger.info(
        "table_restore_success",
        table_name=table_name,
        rows=result["rows"],
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return TableRestoreResponse(**result)
