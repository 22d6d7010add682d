from __future__ import annotations

import re
from datetime import date as Date
from typing import Any

from daylog.core.config import settings
from daylog.core.security import AuthContext
from daylog.schemas.categories import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_COLOR,
    Category,
)
from daylog.schemas.time_blocks import TimeBlock
from daylog.services.supabase_rest import SupabaseRest

TIME_BLOCK_FIELDS = "id,user_id,date,start_time,end_time,category,activity,created_at,updated_at"
CATEGORY_FIELDS = "value,label,color"

# Upper bound on rows pulled for one stats/sync request.
_MAX_BLOCK_ROWS = 10_000

_SECONDS_RE = re.compile(r"^\d{2}:\d{2}:\d{2}(?:\.\d+)?$")


def user_client() -> SupabaseRest:
    return SupabaseRest(str(settings.supabase_url), settings.supabase_anon_key)


def date_range_params(user_id: str, start: Date, end: Date) -> dict[str, Any]:
    params: dict[str, Any] = {
        "select": TIME_BLOCK_FIELDS,
        "user_id": f"eq.{user_id}",
        "order": "date.asc,start_time.asc",
        "limit": _MAX_BLOCK_ROWS,
    }
    if start == end:
        params["date"] = f"eq.{start.isoformat()}"
    else:
        params["and"] = f"(date.gte.{start.isoformat()},date.lte.{end.isoformat()})"
    return params


async def fetch_block_rows(
    auth: AuthContext, *, start: Date, end: Date
) -> list[dict[str, Any]]:
    return await user_client().select(
        "time_blocks",
        bearer_token=auth.access_token,
        params=date_range_params(auth.user_id, start, end),
    )


def _clock(value: Any) -> Any:
    # Postgres `time` columns come back as HH:MM:SS.
    if isinstance(value, str) and _SECONDS_RE.match(value):
        return value[:5]
    return value


def normalize_block_row(row: dict[str, Any]) -> dict[str, Any]:
    out = dict(row)
    out["start_time"] = _clock(out.get("start_time"))
    out["end_time"] = _clock(out.get("end_time"))
    if out.get("activity") is None:
        out["activity"] = ""
    return out


async def fetch_blocks(
    auth: AuthContext, *, start: Date, end: Date
) -> list[TimeBlock]:
    rows = await fetch_block_rows(auth, start=start, end=end)
    return [TimeBlock.model_validate(normalize_block_row(row)) for row in rows]


async def fetch_categories(auth: AuthContext) -> list[Category]:
    """The user's categories, or the built-in set if none are stored yet."""
    rows = await user_client().select(
        "categories",
        bearer_token=auth.access_token,
        params={
            "select": CATEGORY_FIELDS,
            "user_id": f"eq.{auth.user_id}",
            "order": "created_at.asc",
        },
    )
    categories = [
        Category(
            value=row["value"],
            label=row.get("label") or row["value"],
            color=row.get("color") or DEFAULT_CATEGORY_COLOR,
        )
        for row in rows
        if isinstance(row.get("value"), str) and row["value"]
    ]
    if not categories:
        return list(DEFAULT_CATEGORIES)
    return categories
