from __future__ import annotations

import httpx
from fastapi import APIRouter, HTTPException, status

from daylog.core.config import settings
from daylog.core.rate_limit import ai_feedback_quota, enforce
from daylog.core.security import AuthDep
from daylog.schemas.integrations import AiFeedbackRequest, AiFeedbackResponse
from daylog.services.aggregator import aggregate_report
from daylog.services.category_stats import build_category_rows, summary_line
from daylog.services.error_log import log_system_error
from daylog.services.openai_service import (
    FEEDBACK_JSON_SCHEMA,
    call_openai_structured,
)
from daylog.services.privacy import sanitize_for_llm
from daylog.services.timeline_store import fetch_blocks, fetch_categories

router = APIRouter()

MAX_FEEDBACK_BLOCKS = 100

SYSTEM_PROMPT = (
    "당신은 사용자의 시간 관리와 일상을 분석하고 긍정적인 피드백을 제공하는 AI 코치입니다.\n"
    "사용자의 하루를 분석하고 구체적이고 실천 가능한 조언을 제공하세요.\n"
    "한국어로 따뜻하고 공감하는 어조로 답변하세요."
)


def build_user_prompt(*, time_summary: str, reflection: str) -> str:
    return (
        "오늘의 시간 사용:\n"
        f"{time_summary or '기록 없음'}\n\n"
        "오늘의 성찰:\n"
        f"{reflection or '없음'}\n\n"
        "위 내용을 바탕으로:\n"
        "1. 오늘 하루 시간 사용의 균형을 분석해주세요\n"
        "2. 잘한 점과 개선할 점을 구체적으로 알려주세요\n"
        "3. 내일을 위한 실천 가능한 조언 2-3가지를 제시해주세요\n\n"
        "200자 이내로 간결하게 답변해주세요."
    )


@router.post("/ai-feedback", response_model=AiFeedbackResponse)
async def ai_feedback(body: AiFeedbackRequest, auth: AuthDep) -> AiFeedbackResponse:
    await enforce(ai_feedback_quota(), auth.user_id)

    categories = await fetch_categories(auth)
    blocks = await fetch_blocks(auth, start=body.date, end=body.date)
    report = aggregate_report(
        blocks[:MAX_FEEDBACK_BLOCKS],
        [c.value for c in categories],
        strict_categories=settings.strict_categories,
        strict_times=settings.strict_time_format,
    )
    time_summary = summary_line(build_category_rows(report.totals, categories))
    user_prompt = build_user_prompt(
        time_summary=sanitize_for_llm(time_summary),
        reflection=sanitize_for_llm(body.reflection.strip()),
    )

    try:
        obj, _usage = await call_openai_structured(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=user_prompt,
            response_schema=FEEDBACK_JSON_SCHEMA,
            schema_name="daily_feedback",
        )
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code == 429:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="요청이 너무 많습니다. 잠시 후 다시 시도해주세요.",
            )
        await log_system_error(
            route="/api/ai-feedback",
            message="AI feedback request failed",
            user_id=auth.user_id,
            err=exc,
            meta={"status_code": exc.response.status_code},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI 피드백 생성에 실패했습니다.",
        )
    except Exception as exc:
        await log_system_error(
            route="/api/ai-feedback",
            message="AI feedback request failed",
            user_id=auth.user_id,
            err=exc,
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI 피드백 생성에 실패했습니다.",
        )

    feedback = obj.get("feedback") if isinstance(obj, dict) else None
    if not isinstance(feedback, str) or not feedback.strip():
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI 피드백 생성에 실패했습니다.",
        )
    return AiFeedbackResponse(feedback=feedback.strip())
