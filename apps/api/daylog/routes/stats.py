from __future__ import annotations

from datetime import date as Date

from fastapi import APIRouter, Query

from daylog.core.config import settings
from daylog.core.security import AuthContext, AuthDep
from daylog.routes.time_blocks import resolve_range
from daylog.schemas.stats import StatsSummary
from daylog.services.aggregator import aggregate_report
from daylog.services.calendar import week_range
from daylog.services.category_stats import build_summary
from daylog.services.timeline_store import fetch_blocks, fetch_categories

router = APIRouter()


async def summarize_range(
    auth: AuthContext, *, start: Date, end: Date
) -> StatsSummary:
    categories = await fetch_categories(auth)
    blocks = await fetch_blocks(auth, start=start, end=end)
    report = aggregate_report(
        blocks,
        [c.value for c in categories],
        strict_categories=settings.strict_categories,
        strict_times=settings.strict_time_format,
    )
    return build_summary(report, categories, start_date=start, end_date=end)


@router.get("/stats/daily", response_model=StatsSummary)
async def daily_stats(
    auth: AuthDep,
    date: Date | None = Query(default=None, description="YYYY-MM-DD, defaults to today"),
) -> StatsSummary:
    day = date or Date.today()
    return await summarize_range(auth, start=day, end=day)


@router.get("/stats/weekly", response_model=StatsSummary)
async def weekly_stats(
    auth: AuthDep,
    reference_date: Date | None = Query(
        default=None, description="Any day of the week, defaults to today"
    ),
) -> StatsSummary:
    start, end = week_range(reference_date or Date.today())
    return await summarize_range(auth, start=start, end=end)


@router.get("/stats/range", response_model=StatsSummary)
async def range_stats(
    auth: AuthDep,
    start: Date = Query(..., description="YYYY-MM-DD"),
    end: Date = Query(..., description="YYYY-MM-DD"),
) -> StatsSummary:
    range_start, range_end = resolve_range(day=None, start=start, end=end)
    return await summarize_range(auth, start=range_start, end=range_end)
