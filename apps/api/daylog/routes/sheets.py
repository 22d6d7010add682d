from __future__ import annotations

from datetime import date as Date

from fastapi import APIRouter, HTTPException, status

from daylog.core.config import settings
from daylog.core.security import AuthContext, AuthDep
from daylog.schemas.integrations import (
    SheetsDownloadResponse,
    SheetsUploadRequest,
    SheetsUploadResponse,
)
from daylog.services.calendar import trailing_range
from daylog.services.error_log import log_system_error
from daylog.services.sheets import (
    SheetsSyncError,
    blocks_to_rows,
    download_rows,
    upload_rows,
)
from daylog.services.timeline_store import fetch_blocks

router = APIRouter()


def _require_configured() -> None:
    if not settings.is_sheets_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google Sheets sync is not configured",
        )


async def _sync_failed(
    route: str, auth: AuthContext, exc: SheetsSyncError
) -> HTTPException:
    await log_system_error(
        route=route,
        message="Google Sheets sync failed",
        user_id=auth.user_id,
        err=exc,
        meta={"status_code": exc.status_code},
    )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Google Sheets 동기화에 실패했습니다.",
    )


@router.post("/sheets/upload", response_model=SheetsUploadResponse)
async def upload_to_sheets(
    body: SheetsUploadRequest, auth: AuthDep
) -> SheetsUploadResponse:
    _require_configured()
    start, end = trailing_range(
        body.reference_date or Date.today(), settings.sheets_sync_days
    )
    blocks = await fetch_blocks(auth, start=start, end=end)
    # Checked before the sheet is cleared.
    rows = blocks_to_rows(blocks)
    if not rows:
        return SheetsUploadResponse(success=False, message="No data to upload")

    try:
        added = await upload_rows(rows)
    except SheetsSyncError as exc:
        raise await _sync_failed("/api/sheets/upload", auth, exc)
    return SheetsUploadResponse(success=True, rows_added=added)


@router.get("/sheets/download", response_model=SheetsDownloadResponse)
async def download_from_sheets(auth: AuthDep) -> SheetsDownloadResponse:
    _require_configured()
    try:
        rows = await download_rows()
    except SheetsSyncError as exc:
        raise await _sync_failed("/api/sheets/download", auth, exc)
    return SheetsDownloadResponse(success=True, data=rows)
