from __future__ import annotations

import re
from typing import Any

# Free-text fields (activity, reflection) can carry contact details; mask
# them before they leave for the LLM or land in the error table.
_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")
_PHONE_RE = re.compile(
    r"(?<!\d)(?:\+?\d{1,3}[-.\s]?)?(?:\d{2,4}[-.\s]?\d{3,4}[-.\s]?\d{4})(?!\d)"
)
_KR_RRN_RE = re.compile(r"\b\d{6}-?[1-4]\d{6}\b")
_LONG_DIGIT_RE = re.compile(r"\b\d{12,19}\b")

_BEARER_RE = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*")
_JWT_RE = re.compile(
    r"\b[A-Za-z0-9\-_]{20,}\.[A-Za-z0-9\-_]{20,}\.[A-Za-z0-9\-_]{20,}\b"
)
_OPENAI_KEY_RE = re.compile(r"\bsk-(?:proj-|live-|test-)?[A-Za-z0-9]{16,}\b")
_GOOGLE_API_KEY_RE = re.compile(r"\bAIza[0-9A-Za-z\-_]{35}\b")
_KEY_QUERY_RE = re.compile(r"([?&]key=)[^&\s\"']+")

_PII_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (_EMAIL_RE, "[REDACTED_EMAIL]"),
    (_KR_RRN_RE, "[REDACTED_RRN]"),
    (_PHONE_RE, "[REDACTED_PHONE]"),
    (_LONG_DIGIT_RE, "[REDACTED_NUMBER]"),
)
_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (_BEARER_RE, "Bearer [REDACTED_TOKEN]"),
    (_JWT_RE, "[REDACTED_JWT]"),
    (_OPENAI_KEY_RE, "[REDACTED_OPENAI_KEY]"),
    (_GOOGLE_API_KEY_RE, "[REDACTED_GOOGLE_API_KEY]"),
    (_KEY_QUERY_RE, r"\1[REDACTED]"),
)

_LOG_TEXT_LIMIT = 1200


def _apply(text: str, patterns: tuple[tuple[re.Pattern[str], str], ...]) -> str:
    for pattern, replacement in patterns:
        text = pattern.sub(replacement, text)
    return text


def mask_pii_text(text: str) -> str:
    if not text:
        return text
    return _apply(text, _PII_PATTERNS)


def redact_secrets_text(text: str) -> str:
    if not text:
        return text
    return _apply(text, _SECRET_PATTERNS)


def sanitize_for_llm(value: Any) -> Any:
    if isinstance(value, str):
        return mask_pii_text(value)
    if isinstance(value, list):
        return [sanitize_for_llm(v) for v in value]
    if isinstance(value, dict):
        return {str(k): sanitize_for_llm(v) for k, v in value.items()}
    return value


def sanitize_for_log(value: Any) -> Any:
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        return redact_secrets_text(mask_pii_text(value))[:_LOG_TEXT_LIMIT]
    if isinstance(value, list):
        return [sanitize_for_log(v) for v in value]
    if isinstance(value, dict):
        return {str(k)[:128]: sanitize_for_log(v) for k, v in value.items()}
    return str(value)[:_LOG_TEXT_LIMIT]
