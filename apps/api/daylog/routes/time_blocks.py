from __future__ import annotations

from datetime import date as Date

from fastapi import APIRouter, HTTPException, Query, status

from daylog.core.config import settings
from daylog.core.security import AuthDep
from daylog.schemas.time_blocks import TimeBlockCreate, TimeBlockRow, TimeBlockUpdate
from daylog.services.calendar import span_days
from daylog.services.timeline_store import (
    TIME_BLOCK_FIELDS,
    fetch_block_rows,
    normalize_block_row,
    user_client,
)

router = APIRouter()


def resolve_range(
    *, day: Date | None, start: Date | None, end: Date | None
) -> tuple[Date, Date]:
    if day is not None:
        return day, day
    if start is None or end is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide either date or both start and end",
        )
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start must be on or before end",
        )
    if span_days(start, end) > settings.stats_max_range_days:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Range is limited to {settings.stats_max_range_days} days",
        )
    return start, end


@router.get("/time-blocks", response_model=list[TimeBlockRow])
async def list_time_blocks(
    auth: AuthDep,
    date: Date | None = Query(default=None, description="YYYY-MM-DD"),
    start: Date | None = Query(default=None),
    end: Date | None = Query(default=None),
) -> list[TimeBlockRow]:
    range_start, range_end = resolve_range(day=date, start=start, end=end)
    rows = await fetch_block_rows(auth, start=range_start, end=range_end)
    return [TimeBlockRow.model_validate(normalize_block_row(r)) for r in rows]


@router.post(
    "/time-blocks",
    response_model=TimeBlockRow,
    status_code=status.HTTP_201_CREATED,
)
async def create_time_block(body: TimeBlockCreate, auth: AuthDep) -> TimeBlockRow:
    sb = user_client()
    row = await sb.insert_one(
        "time_blocks",
        bearer_token=auth.access_token,
        row={
            "user_id": auth.user_id,
            "date": body.date.isoformat(),
            "start_time": body.start_time,
            "end_time": body.end_time,
            "category": body.category,
            "activity": body.activity,
        },
    )
    if not row:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save time block",
        )
    return TimeBlockRow.model_validate(normalize_block_row(row))


@router.patch("/time-blocks/{block_id}", response_model=TimeBlockRow)
async def update_time_block(
    block_id: str, body: TimeBlockUpdate, auth: AuthDep
) -> TimeBlockRow:
    changes = body.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Nothing to update",
        )
    for required in ("date", "category"):
        if required in changes and changes[required] is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{required} cannot be cleared",
            )

    sb = user_client()
    rows = await sb.patch(
        "time_blocks",
        bearer_token=auth.access_token,
        params={
            "select": TIME_BLOCK_FIELDS,
            "id": f"eq.{block_id}",
            "user_id": f"eq.{auth.user_id}",
        },
        payload=changes,
    )
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Time block not found"
        )
    return TimeBlockRow.model_validate(normalize_block_row(rows[0]))


@router.delete("/time-blocks/{block_id}")
async def delete_time_block(block_id: str, auth: AuthDep) -> dict[str, bool]:
    sb = user_client()
    await sb.delete(
        "time_blocks",
        bearer_token=auth.access_token,
        params={"id": f"eq.{block_id}", "user_id": f"eq.{auth.user_id}"},
    )
    return {"ok": True}
