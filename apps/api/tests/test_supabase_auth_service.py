from __future__ import annotations

import httpx
import pytest

import daylog.services.supabase_auth as supabase_auth
from daylog.services.supabase_auth import SupabaseAuthError, get_current_user


class _AuthClient:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.calls = 0

    async def get(self, url: str, **kwargs) -> httpx.Response:
        self.calls += 1
        assert url.endswith("/auth/v1/user")
        assert kwargs["headers"]["authorization"] == "Bearer token-123"
        return self.response


def _response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("GET", "https://example.supabase.co/auth/v1/user"),
    )


@pytest.mark.asyncio
async def test_get_current_user_caches_registered_user(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _AuthClient(_response(200, {"id": "user-1", "email": "a@daylog.test"}))
    monkeypatch.setattr(supabase_auth, "get_http", lambda: client)

    first = await get_current_user(access_token="token-123")
    second = await get_current_user(access_token="token-123")

    assert first == second == {"id": "user-1", "email": "a@daylog.test"}
    assert client.calls == 1
    assert len(supabase_auth.user_cache) == 1


@pytest.mark.asyncio
async def test_get_current_user_never_caches_anonymous(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _AuthClient(_response(200, {"id": "guest-1", "is_anonymous": True}))
    monkeypatch.setattr(supabase_auth, "get_http", lambda: client)

    await get_current_user(access_token="token-123")
    await get_current_user(access_token="token-123")

    assert client.calls == 2
    assert len(supabase_auth.user_cache) == 0


@pytest.mark.asyncio
async def test_get_current_user_rejected_token(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _AuthClient(_response(401, {"msg": "invalid JWT"}))
    monkeypatch.setattr(supabase_auth, "get_http", lambda: client)

    with pytest.raises(SupabaseAuthError) as exc_info:
        await get_current_user(access_token="token-123")

    assert exc_info.value.status_code == 401


def test_token_cache_expires_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    cache = supabase_auth.TokenCache(ttl_seconds=30.0, max_entries=2)
    now = [100.0]
    monkeypatch.setattr(supabase_auth.time, "monotonic", lambda: now[0])

    cache.put("t1", {"id": "u1"})
    assert cache.get("t1") == {"id": "u1"}

    now[0] = 131.0
    assert cache.get("t1") is None
    assert len(cache) == 0


def test_token_cache_clears_when_full() -> None:
    cache = supabase_auth.TokenCache(ttl_seconds=30.0, max_entries=2)

    cache.put("t1", {"id": "u1"})
    cache.put("t2", {"id": "u2"})
    cache.put("t3", {"id": "u3"})

    assert len(cache) == 1
    assert cache.get("t3") == {"id": "u3"}
