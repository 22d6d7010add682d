from __future__ import annotations

import logging
import traceback
from typing import Any

from daylog.core.config import settings
from daylog.services.privacy import redact_secrets_text, sanitize_for_log
from daylog.services.supabase_rest import SupabaseRest

logger = logging.getLogger(__name__)

_STACK_LIMIT = 8000


def _format_stack(err: BaseException) -> str:
    raw = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    return redact_secrets_text(raw[:_STACK_LIMIT])


async def log_system_error(
    *,
    route: str,
    message: str,
    user_id: str | None = None,
    err: BaseException | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    """Record a server-side failure in `system_errors`. Never raises."""
    logger.error("%s: %s", route, message, exc_info=err)
    try:
        row: dict[str, Any] = {
            "route": sanitize_for_log(route),
            "message": sanitize_for_log(message),
            "stack": _format_stack(err) if err is not None else None,
            "user_id": user_id,
            "meta": sanitize_for_log(meta or {}),
        }
        # Audit table is service-role only.
        sb = SupabaseRest(
            str(settings.supabase_url), settings.supabase_service_role_key
        )
        await sb.insert_one(
            "system_errors", bearer_token=settings.supabase_service_role_key, row=row
        )
    except Exception:
        logger.warning("failed to persist system error for %s", route)
