from __future__ import annotations

from fastapi.testclient import TestClient

from daylog.services.supabase_rest import SupabaseRestError


def test_health_echoes_incoming_correlation_id(client: TestClient) -> None:
    response = client.get("/health", headers={"x-correlation-id": "cid-health-echo"})
    assert response.status_code == 200
    assert response.headers.get("x-correlation-id") == "cid-health-echo"


def test_health_generates_correlation_id_when_missing(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    correlation_id = response.headers.get("x-correlation-id")
    assert correlation_id
    assert len(correlation_id) >= 8


def test_supabase_exception_response_keeps_same_correlation_id(
    authenticated_client: TestClient,
    supabase_mock,
) -> None:
    supabase_mock["select"].side_effect = SupabaseRestError(
        status_code=500,
        message="database unavailable",
        code="08006",
    )

    response = authenticated_client.get(
        "/api/time-blocks",
        params={"date": "2026-02-15"},
        headers={"x-correlation-id": "cid-time-blocks-error"},
    )
    assert response.status_code == 502
    assert response.headers.get("x-correlation-id") == "cid-time-blocks-error"
    assert response.json()["detail"]["code"] == "08006"


def test_rls_write_violation_maps_to_503(
    authenticated_client: TestClient,
    supabase_mock,
) -> None:
    supabase_mock["insert_one"].side_effect = SupabaseRestError(
        status_code=403,
        message='new row violates row-level security policy for table "time_blocks"',
        code="42501",
    )

    response = authenticated_client.post(
        "/api/time-blocks",
        json={"date": "2026-02-15", "start_time": "09:00", "end_time": "10:00", "category": "work"},
    )
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "42501"
