from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass

from fastapi import HTTPException, status

from daylog.core.config import settings

DEFAULT_MESSAGE = "요청이 너무 많습니다. 잠시 후 다시 시도해주세요."


@dataclass(frozen=True)
class Quota:
    """A named fixed-window limit; counters are keyed `<scope>:<subject>`."""

    scope: str
    limit: int
    window_seconds: int = 60
    message: str = DEFAULT_MESSAGE

    def key(self, subject: str) -> str:
        return f"{self.scope}:{subject}"


@dataclass
class WindowCounter:
    start: float
    count: int


IP_QUOTA = Quota(scope="ip", limit=240)
USER_QUOTA = Quota(scope="user", limit=240)


def ai_feedback_quota() -> Quota:
    limit = settings.ai_feedback_per_minute_limit
    return Quota(
        scope="ai_feedback",
        limit=limit,
        message=f"AI 피드백은 1분에 {limit}회까지 요청할 수 있습니다.",
    )


_lock = asyncio.Lock()
_counters: dict[str, WindowCounter] = {}
_MAX_KEYS = 20_000


async def enforce(quota: Quota, subject: str) -> int:
    """
    Count one request for `subject` and return how many are left in the window.

    Counters live in process memory, so each worker enforces its own window.
    A limit of 0 (or less) disables the quota.
    """
    if quota.limit <= 0:
        return 0

    key = quota.key(subject)
    now = time.time()
    async with _lock:
        if len(_counters) > _MAX_KEYS:
            _counters.clear()

        c = _counters.get(key)
        if c is None or (now - c.start) >= quota.window_seconds:
            _counters[key] = WindowCounter(start=now, count=1)
            return quota.limit - 1

        if c.count >= quota.limit:
            retry_after = max(1, math.ceil(quota.window_seconds - (now - c.start)))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": quota.message,
                    "hint": f"Retry in {retry_after}s.",
                    "code": "RATE_LIMITED",
                },
                headers={"Retry-After": str(retry_after)},
            )

        c.count += 1
        return quota.limit - c.count
