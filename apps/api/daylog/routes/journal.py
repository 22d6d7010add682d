from __future__ import annotations

from datetime import date as Date

from fastapi import APIRouter, Query

from daylog.core.security import AuthDep
from daylog.schemas.journal import (
    ReflectionOut,
    ReflectionUpsert,
    WeeklyGoalsOut,
    WeeklyGoalsUpsert,
)
from daylog.services.calendar import week_start
from daylog.services.timeline_store import user_client

router = APIRouter()


@router.get("/reflections", response_model=ReflectionOut)
async def get_reflection(
    auth: AuthDep, date: Date = Query(..., description="YYYY-MM-DD")
) -> ReflectionOut:
    rows = await user_client().select(
        "daily_reflections",
        bearer_token=auth.access_token,
        params={
            "select": "date,content,updated_at",
            "user_id": f"eq.{auth.user_id}",
            "date": f"eq.{date.isoformat()}",
            "limit": 1,
        },
    )
    if not rows:
        return ReflectionOut(date=date)
    row = rows[0]
    return ReflectionOut(
        date=date, content=row.get("content"), updated_at=row.get("updated_at")
    )


@router.put("/reflections", response_model=ReflectionOut)
async def upsert_reflection(body: ReflectionUpsert, auth: AuthDep) -> ReflectionOut:
    row = await user_client().upsert_one(
        "daily_reflections",
        bearer_token=auth.access_token,
        on_conflict="user_id,date",
        row={
            "user_id": auth.user_id,
            "date": body.date.isoformat(),
            "content": body.content,
        },
    )
    return ReflectionOut(
        date=body.date,
        content=row.get("content", body.content),
        updated_at=row.get("updated_at"),
    )


@router.get("/weekly-goals", response_model=WeeklyGoalsOut)
async def get_weekly_goals(
    auth: AuthDep,
    reference_date: Date | None = Query(
        default=None, description="Any day of the week, defaults to today"
    ),
) -> WeeklyGoalsOut:
    monday = week_start(reference_date or Date.today())
    rows = await user_client().select(
        "weekly_goals",
        bearer_token=auth.access_token,
        params={
            "select": "week_start,goals",
            "user_id": f"eq.{auth.user_id}",
            "week_start": f"eq.{monday.isoformat()}",
            "limit": 1,
        },
    )
    goals = rows[0].get("goals") if rows else None
    return WeeklyGoalsOut(
        week_start=monday,
        goals=[g for g in goals if isinstance(g, str)] if isinstance(goals, list) else [],
    )


@router.put("/weekly-goals", response_model=WeeklyGoalsOut)
async def upsert_weekly_goals(body: WeeklyGoalsUpsert, auth: AuthDep) -> WeeklyGoalsOut:
    monday = week_start(body.week_start)
    await user_client().upsert_one(
        "weekly_goals",
        bearer_token=auth.access_token,
        on_conflict="user_id,week_start",
        row={
            "user_id": auth.user_id,
            "week_start": monday.isoformat(),
            "goals": body.goals,
        },
    )
    return WeeklyGoalsOut(week_start=monday, goals=body.goals)
