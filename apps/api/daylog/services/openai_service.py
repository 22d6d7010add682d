from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from daylog.core.config import settings

logger = logging.getLogger(__name__)

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"

FEEDBACK_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["feedback"],
    "properties": {
        "feedback": {"type": "string"},
    },
}

_RETRYABLE_STATUSES = {408, 409, 425, 500, 502, 503, 504}


def _extract_output_text(resp_json: dict[str, Any]) -> str:
    direct = resp_json.get("output_text")
    if isinstance(direct, str) and direct.strip():
        return direct

    output = resp_json.get("output")
    if isinstance(output, list):
        for item in output:
            content = item.get("content") if isinstance(item, dict) else None
            if not isinstance(content, list):
                continue
            for c in content:
                if (
                    isinstance(c, dict)
                    and c.get("type") in ("output_text", "text")
                    and isinstance(c.get("text"), str)
                ):
                    return c["text"]
    raise ValueError("OpenAI response missing output text")


def _token_count(usage: dict[str, Any], key: str) -> int | None:
    value = usage.get(key)
    return int(value) if isinstance(value, (int, float)) else None


def _extract_usage(resp_json: dict[str, Any]) -> dict[str, int | None]:
    usage = resp_json.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    return {
        key: _token_count(usage, key)
        for key in ("input_tokens", "output_tokens", "total_tokens")
    }


def _is_retryable_exception(exc: BaseException) -> bool:
    # 429 is surfaced to the caller as-is; the client decides when to retry.
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUSES
    return False


def _before_sleep_log(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, httpx.HTTPStatusError):
        logger.warning(
            "OpenAI request retrying due to status %s (attempt %s)",
            exc.response.status_code,
            retry_state.attempt_number,
        )
    else:
        logger.warning(
            "OpenAI request retrying due to transport error (attempt %s)",
            retry_state.attempt_number,
        )


async def call_openai_structured(
    *,
    system_prompt: str,
    user_prompt: str,
    response_schema: dict[str, Any] | None = None,
    schema_name: str = "daily_feedback",
) -> tuple[dict[str, Any], dict[str, int | None]]:
    payload: dict[str, Any] = {
        "model": settings.openai_model,
        "input": [
            {
                "role": "system",
                "content": [{"type": "input_text", "text": system_prompt}],
            },
            {
                "role": "user",
                "content": [{"type": "input_text", "text": user_prompt}],
            },
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": schema_name,
                "schema": response_schema or FEEDBACK_JSON_SCHEMA,
                "strict": True,
            }
        },
        "temperature": 0.4,
    }
    headers = {
        "authorization": f"Bearer {settings.openai_api_key}",
        "content-type": "application/json",
    }

    resp_json: dict[str, Any] | None = None
    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0)) as client:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential_jitter(initial=0.4, max=3.0),
            retry=retry_if_exception(_is_retryable_exception),
            reraise=True,
            before_sleep=_before_sleep_log,
        ):
            with attempt:
                resp = await client.post(
                    OPENAI_RESPONSES_URL, headers=headers, json=payload
                )
                resp.raise_for_status()
                resp_json = resp.json()

    if resp_json is None:
        raise RuntimeError("OpenAI request failed without response")

    obj = json.loads(_extract_output_text(resp_json))
    return obj, _extract_usage(resp_json)
