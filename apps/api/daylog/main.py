from __future__ import annotations

from contextlib import asynccontextmanager
from urllib.parse import urlparse
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from daylog.core.config import settings
from daylog.routes.ai_feedback import router as ai_feedback_router
from daylog.routes.categories import router as categories_router
from daylog.routes.journal import router as journal_router
from daylog.routes.sheets import router as sheets_router
from daylog.routes.stats import router as stats_router
from daylog.routes.time_blocks import router as time_blocks_router
from daylog.services.error_log import log_system_error
from daylog.services.supabase_auth import get_current_user
from daylog.services.supabase_rest import SupabaseRestError, close_http


CORRELATION_HEADER = "x-correlation-id"


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_http()


app = FastAPI(title="Daylog API", version="0.1.0", lifespan=lifespan)


def _init_sentry() -> None:
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[FastApiIntegration()],
        traces_sample_rate=max(0.0, min(settings.sentry_traces_sample_rate, 1.0)),
        send_default_pii=False,
        environment=settings.app_env,
    )


_init_sentry()


def _origin(url: str) -> str:
    # CORS compares scheme+host+port; FRONTEND_URL may carry a path.
    p = urlparse(url)
    if p.scheme and p.netloc:
        return f"{p.scheme}://{p.netloc}"
    return url.rstrip("/")


_ALLOWED_ORIGINS = sorted(
    {
        _origin(str(settings.frontend_url)),
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    }
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)


@app.middleware("http")
async def log_server_error_responses(request: Request, call_next):
    response = await call_next(request)
    if response.status_code >= 500:
        await log_system_error(
            route=str(request.url.path),
            message=f"Server response status {response.status_code}",
            user_id=await _try_get_user_id_from_request(request),
            meta={
                "status_code": response.status_code,
                "method": request.method,
                "correlation_id": getattr(request.state, "correlation_id", None),
            },
        )
    return response


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    incoming = (request.headers.get(CORRELATION_HEADER) or "").strip()
    correlation_id = incoming[:128] if incoming else uuid4().hex
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


async def _try_get_user_id_from_request(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    if not token:
        return None
    try:
        user = await get_current_user(access_token=token, use_cache=True)
    except Exception:
        return None
    uid = user.get("id")
    return uid if isinstance(uid, str) and uid.strip() else None


def _with_correlation(request: Request, response: JSONResponse) -> JSONResponse:
    # Exception handlers run outside the middleware stack's response path.
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(SupabaseRestError)
async def supabase_rest_error_handler(request: Request, exc: SupabaseRestError):
    msg = str(exc) or "Supabase request failed"
    is_rls_write_violation = (
        exc.code == "42501" and "row-level security policy" in msg.lower()
    )

    detail: dict[str, str | None]
    if is_rls_write_violation:
        detail = {
            "message": "Supabase 쓰기 권한(RLS) 문제로 저장에 실패했습니다.",
            "hint": "테이블의 RLS 정책에 user_id = auth.uid() 조건의 쓰기 정책이 있는지 확인하세요.",
            "code": exc.code,
        }
        status_code = 503
    else:
        detail = {
            "message": "Supabase 데이터 요청이 실패했습니다.",
            "hint": exc.hint,
            "code": exc.code,
        }
        # 4xx passes through; upstream 5xx becomes 502.
        status_code = exc.status_code if 400 <= exc.status_code < 500 else 502

    await log_system_error(
        route=str(request.url.path),
        message="Supabase request failed",
        user_id=await _try_get_user_id_from_request(request),
        err=exc,
        meta={"status_code": exc.status_code, "code": exc.code},
    )
    return _with_correlation(
        request, JSONResponse(status_code=status_code, content={"detail": detail})
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    await log_system_error(
        route=str(request.url.path),
        message="Unhandled server error",
        user_id=await _try_get_user_id_from_request(request),
        err=exc,
        meta={"method": request.method},
    )
    return _with_correlation(
        request,
        JSONResponse(status_code=500, content={"detail": "Internal server error"}),
    )


app.include_router(categories_router, prefix="/api")
app.include_router(time_blocks_router, prefix="/api")
app.include_router(stats_router, prefix="/api")
app.include_router(journal_router, prefix="/api")
app.include_router(ai_feedback_router, prefix="/api")
app.include_router(sheets_router, prefix="/api")
