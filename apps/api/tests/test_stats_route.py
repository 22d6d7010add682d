from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

import daylog.routes.stats as stats_route

TEST_USER_ID = "00000000-0000-4000-8000-000000000001"


def _block_row(block_id: str, day: str, start: str, end: str, category: str) -> dict[str, Any]:
    return {
        "id": block_id,
        "user_id": TEST_USER_ID,
        "date": day,
        "start_time": start,
        "end_time": end,
        "category": category,
        "activity": None,
    }


def _wire_select(supabase_mock, *, categories: list[dict], blocks: list[dict]) -> None:
    async def _select(*, table: str, bearer_token: str, params: dict[str, Any]):
        if table == "categories":
            return categories
        if table == "time_blocks":
            return blocks
        return []

    supabase_mock["select"].side_effect = _select


def test_daily_stats_uses_default_categories_and_sorts_rows(
    authenticated_client: TestClient, supabase_mock
) -> None:
    _wire_select(
        supabase_mock,
        categories=[],
        blocks=[
            _block_row("b1", "2026-02-15", "09:00:00", "12:00:00", "work"),
            _block_row("b2", "2026-02-15", "13:00:00", "14:30:00", "study"),
            _block_row("b3", "2026-02-15", "22:00:00", "23:00:00", "work"),
        ],
    )

    response = authenticated_client.get("/api/stats/daily", params={"date": "2026-02-15"})

    assert response.status_code == 200
    body = response.json()
    assert body["start_date"] == "2026-02-15"
    assert body["end_date"] == "2026-02-15"
    assert body["total_minutes"] == 330
    assert body["total_display_text"] == "5시간 30분"
    assert [(r["value"], r["label"], r["percentage"]) for r in body["categories"]] == [
        ("work", "업무", 73),
        ("study", "공부", 27),
    ]

    block_calls = [
        c for c in supabase_mock["select"].await_args_list if c.kwargs["table"] == "time_blocks"
    ]
    assert len(block_calls) == 1
    params = block_calls[0].kwargs["params"]
    assert params["user_id"] == f"eq.{TEST_USER_ID}"
    assert params["date"] == "eq.2026-02-15"


def test_daily_stats_labels_deleted_category_with_raw_value(
    authenticated_client: TestClient, supabase_mock
) -> None:
    _wire_select(
        supabase_mock,
        categories=[{"value": "work", "label": "업무", "color": "bg-primary/10 text-primary"}],
        blocks=[
            _block_row("b1", "2026-02-15", "09:00", "10:00", "work"),
            _block_row("b2", "2026-02-15", "20:00", "21:00", "reading"),
        ],
    )

    response = authenticated_client.get("/api/stats/daily", params={"date": "2026-02-15"})

    assert response.status_code == 200
    rows = {r["value"]: r for r in response.json()["categories"]}
    assert rows["reading"]["label"] == "reading"
    assert rows["reading"]["percentage"] == 50


def test_weekly_stats_queries_monday_to_sunday(
    authenticated_client: TestClient, supabase_mock
) -> None:
    _wire_select(
        supabase_mock,
        categories=[],
        blocks=[
            _block_row("b1", "2026-02-09", "09:00", "10:00", "exercise"),
            _block_row("b2", "2026-02-13", "09:00", "11:00", "exercise"),
        ],
    )

    response = authenticated_client.get(
        "/api/stats/weekly", params={"reference_date": "2026-02-11"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["start_date"] == "2026-02-09"
    assert body["end_date"] == "2026-02-15"
    assert body["categories"][0]["total_minutes"] == 180
    assert body["categories"][0]["hours"] == 3.0

    block_call = next(
        c for c in supabase_mock["select"].await_args_list if c.kwargs["table"] == "time_blocks"
    )
    assert block_call.kwargs["params"]["and"] == "(date.gte.2026-02-09,date.lte.2026-02-15)"


def test_range_stats_rejects_reversed_range(
    authenticated_client: TestClient, supabase_mock
) -> None:
    response = authenticated_client.get(
        "/api/stats/range", params={"start": "2026-02-15", "end": "2026-02-01"}
    )

    assert response.status_code == 422
    supabase_mock["select"].assert_not_awaited()


def test_range_stats_rejects_ranges_over_limit(
    authenticated_client: TestClient, supabase_mock
) -> None:
    response = authenticated_client.get(
        "/api/stats/range", params={"start": "2024-01-01", "end": "2026-01-01"}
    )

    assert response.status_code == 422


def test_range_stats_with_no_blocks_returns_empty_summary(
    authenticated_client: TestClient, supabase_mock
) -> None:
    _wire_select(supabase_mock, categories=[], blocks=[])

    response = authenticated_client.get(
        "/api/stats/range", params={"start": "2026-02-01", "end": "2026-02-28"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_minutes"] == 0
    assert body["total_display_text"] == "0분"
    assert body["categories"] == []


def test_strict_time_format_reports_excluded_blocks(
    authenticated_client: TestClient, supabase_mock, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(stats_route.settings, "strict_time_format", True)
    _wire_select(
        supabase_mock,
        categories=[],
        blocks=[
            _block_row("b1", "2026-02-15", "09:00", "10:00", "work"),
            _block_row("b2", "2026-02-15", "9a:00", "10:00", "work"),
        ],
    )

    response = authenticated_client.get("/api/stats/daily", params={"date": "2026-02-15"})

    assert response.status_code == 200
    body = response.json()
    assert body["excluded_count"] == 1
    assert body["total_minutes"] == 60
