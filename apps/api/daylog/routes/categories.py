from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from daylog.core.security import AuthDep
from daylog.schemas.categories import Category, CategoryCreate, CategoryUpdate
from daylog.services.supabase_rest import SupabaseRestError
from daylog.services.timeline_store import (
    CATEGORY_FIELDS,
    fetch_categories,
    user_client,
)

router = APIRouter()


def _is_conflict_error(exc: SupabaseRestError) -> bool:
    msg = str(exc).lower()
    return exc.status_code == 409 or exc.code == "23505" or "duplicate key" in msg


@router.get("/categories", response_model=list[Category])
async def list_categories(auth: AuthDep) -> list[Category]:
    return await fetch_categories(auth)


@router.post(
    "/categories", response_model=Category, status_code=status.HTTP_201_CREATED
)
async def create_category(body: CategoryCreate, auth: AuthDep) -> Category:
    sb = user_client()
    try:
        row = await sb.insert_one(
            "categories",
            bearer_token=auth.access_token,
            row={
                "user_id": auth.user_id,
                "value": body.value,
                "label": body.label,
                "color": body.color,
            },
        )
    except SupabaseRestError as exc:
        if _is_conflict_error(exc):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="이미 존재하는 카테고리입니다.",
            )
        raise
    return Category.model_validate(row or body.model_dump())


@router.patch("/categories/{value}", response_model=Category)
async def update_category(value: str, body: CategoryUpdate, auth: AuthDep) -> Category:
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Nothing to update",
        )

    sb = user_client()
    rows = await sb.patch(
        "categories",
        bearer_token=auth.access_token,
        params={
            "select": CATEGORY_FIELDS,
            "user_id": f"eq.{auth.user_id}",
            "value": f"eq.{value}",
        },
        payload=changes,
    )
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Category not found"
        )
    return Category.model_validate(rows[0])


@router.delete("/categories/{value}")
async def delete_category(value: str, auth: AuthDep) -> dict[str, bool]:
    # Blocks that reference the category are kept; stats fall back to the
    # raw value as their label.
    sb = user_client()
    await sb.delete(
        "categories",
        bearer_token=auth.access_token,
        params={"user_id": f"eq.{auth.user_id}", "value": f"eq.{value}"},
    )
    return {"ok": True}
