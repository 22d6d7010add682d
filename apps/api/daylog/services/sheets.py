from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from daylog.core.config import settings
from daylog.schemas.integrations import SheetRow
from daylog.schemas.time_blocks import TimeBlock
from daylog.services.aggregator import calculate_duration
from daylog.services.privacy import redact_secrets_text
from daylog.services.supabase_rest import get_http

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DATA_RANGE = "Sheet1!A2:F"
APPEND_ANCHOR = "Sheet1!A2"


class SheetsSyncError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _values_url(spreadsheet_id: str, a1_range: str, suffix: str = "") -> str:
    return f"{SHEETS_API_BASE}/{quote(spreadsheet_id, safe='')}/values/{quote(a1_range, safe='!:')}{suffix}"


def _credentials() -> tuple[str, str]:
    if not settings.is_sheets_configured():
        raise SheetsSyncError("Google Sheets sync is not configured")
    return (
        str(settings.google_sheets_api_key),
        str(settings.google_sheets_spreadsheet_id),
    )


def _raise_for_status(resp: Any, action: str) -> None:
    if resp.status_code < 400:
        return
    body = redact_secrets_text(resp.text.strip())[:500]
    logger.error("Google Sheets %s failed (%s): %s", action, resp.status_code, body)
    raise SheetsSyncError(
        f"Failed to {action} Google Sheets: {body or resp.status_code}",
        status_code=resp.status_code,
    )


def block_to_row(block: TimeBlock) -> list[str]:
    hours = calculate_duration(block.start_time, block.end_time) / 60
    return [
        block.date.isoformat() if block.date else "",
        block.start_time or "",
        block.end_time or "",
        block.category or "",
        block.activity,
        f"{hours:.2f}",
    ]


def row_to_sheet_row(values: Sequence[Any]) -> SheetRow:
    cells = [str(v) if v is not None else "" for v in values]
    cells += [""] * (5 - len(cells))
    return SheetRow(
        date=cells[0],
        start_time=cells[1],
        end_time=cells[2],
        category=cells[3],
        activity=cells[4],
    )


def blocks_to_rows(blocks: Sequence[TimeBlock]) -> list[list[str]]:
    # Blocks still being edited (no start/end/category) are not exported.
    return [
        block_to_row(b) for b in blocks if b.start_time and b.end_time and b.category
    ]


async def upload_rows(rows: Sequence[list[str]]) -> int:
    """Replace the sheet body (below the header row) with `rows`."""
    if not rows:
        raise SheetsSyncError("Refusing to clear the sheet with nothing to upload")
    api_key, spreadsheet_id = _credentials()

    http = get_http()
    clear = await http.post(
        _values_url(spreadsheet_id, DATA_RANGE, ":clear"), params={"key": api_key}
    )
    _raise_for_status(clear, "clear")

    append = await http.post(
        _values_url(spreadsheet_id, APPEND_ANCHOR, ":append"),
        params={"key": api_key, "valueInputOption": "RAW"},
        json={"values": list(rows)},
    )
    _raise_for_status(append, "upload to")
    return len(rows)


async def download_rows() -> list[SheetRow]:
    api_key, spreadsheet_id = _credentials()
    resp = await get_http().get(
        _values_url(spreadsheet_id, DATA_RANGE), params={"key": api_key}
    )
    _raise_for_status(resp, "fetch from")
    data = resp.json()
    values = data.get("values") if isinstance(data, dict) else None
    if not isinstance(values, list):
        return []
    return [row_to_sheet_row(v) for v in values if isinstance(v, list)]
