from __future__ import annotations

import time
from typing import Any

import httpx

from daylog.core.config import settings
from daylog.services.supabase_rest import get_http


class SupabaseAuthError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenCache:
    """Short-lived token -> user map; cleared wholesale when it fills up."""

    def __init__(self, *, ttl_seconds: float, max_entries: int) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}

    def get(self, token: str) -> dict[str, Any] | None:
        entry = self._entries.get(token)
        if entry is None:
            return None
        expires_at, user = entry
        if expires_at <= time.monotonic():
            del self._entries[token]
            return None
        return user

    def put(self, token: str, user: dict[str, Any]) -> None:
        if len(self._entries) >= self.max_entries:
            self._entries.clear()
        self._entries[token] = (time.monotonic() + self.ttl_seconds, user)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


user_cache = TokenCache(ttl_seconds=30.0, max_entries=2048)


def _auth_user_url() -> str:
    return str(settings.supabase_url).rstrip("/") + "/auth/v1/user"


async def get_current_user(
    *, access_token: str, use_cache: bool = True
) -> dict[str, Any]:
    """
    Resolve the Supabase user behind an access token via `/auth/v1/user`.

    Anonymous sessions are never cached, so a guest that signs up is seen
    with its new identity on the next request.
    """
    if use_cache:
        cached = user_cache.get(access_token)
        if cached is not None:
            return cached

    try:
        resp = await get_http().get(
            _auth_user_url(),
            headers={
                "apikey": settings.supabase_anon_key,
                "authorization": f"Bearer {access_token}",
                "accept": "application/json",
            },
        )
    except httpx.HTTPError as exc:
        raise SupabaseAuthError(f"Supabase Auth unreachable: {type(exc).__name__}") from exc

    if resp.status_code >= 400:
        raise SupabaseAuthError(
            f"Supabase Auth rejected token ({resp.status_code})",
            status_code=resp.status_code,
        )
    data = resp.json()
    if not isinstance(data, dict) or not data.get("id"):
        raise SupabaseAuthError("Unexpected Supabase user response")

    if use_cache and not data.get("is_anonymous"):
        user_cache.put(access_token, data)
    return data
