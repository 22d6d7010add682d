from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from pydantic import AnyUrl, Field
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_env: str = Field(default="development", alias="APP_ENV")
    frontend_url: AnyUrl = Field(alias="FRONTEND_URL")

    # Supabase
    supabase_url: AnyUrl = Field(alias="SUPABASE_URL")
    supabase_anon_key: str = Field(alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: str = Field(alias="SUPABASE_SERVICE_ROLE_KEY")

    # OpenAI
    openai_api_key: str = Field(alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    # Observability
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(
        default=0.0, alias="SENTRY_TRACES_SAMPLE_RATE"
    )

    # Google Sheets
    # Optional: sync endpoints answer 503 until both are set.
    google_sheets_api_key: str | None = Field(
        default=None, alias="GOOGLE_SHEETS_API_KEY"
    )
    google_sheets_spreadsheet_id: str | None = Field(
        default=None, alias="GOOGLE_SHEETS_SPREADSHEET_ID"
    )
    sheets_sync_days: int = Field(default=30, alias="SHEETS_SYNC_DAYS")

    # Aggregation policy
    strict_categories: bool = Field(default=False, alias="STRICT_CATEGORIES")
    strict_time_format: bool = Field(default=False, alias="STRICT_TIME_FORMAT")

    # Limits
    ai_feedback_per_minute_limit: int = Field(
        default=6, alias="AI_FEEDBACK_PER_MINUTE_LIMIT"
    )
    stats_max_range_days: int = Field(default=366, alias="STATS_MAX_RANGE_DAYS")

    @model_validator(mode="after")
    def validate_runtime_constraints(self) -> "Settings":
        env = (self.app_env or "").strip().lower()
        is_prod = env in {"production", "prod"}

        frontend_origin = urlparse(str(self.frontend_url))
        frontend_host = (frontend_origin.hostname or "").lower()
        if is_prod and frontend_host in {"localhost", "127.0.0.1"}:
            raise ValueError(
                "Invalid FRONTEND_URL for production: localhost is not allowed. "
                "Set FRONTEND_URL to your public web domain."
            )

        supabase_origin = urlparse(str(self.supabase_url))
        supabase_host = (supabase_origin.hostname or "").lower()
        if is_prod and supabase_host in {"localhost", "127.0.0.1"}:
            raise ValueError(
                "Invalid SUPABASE_URL for production: localhost is not allowed."
            )

        if not (1 <= self.sheets_sync_days <= 366):
            raise ValueError("SHEETS_SYNC_DAYS must be 1..366")
        if not (1 <= self.stats_max_range_days <= 3660):
            raise ValueError("STATS_MAX_RANGE_DAYS must be 1..3660")
        if self.ai_feedback_per_minute_limit < 0:
            raise ValueError("AI_FEEDBACK_PER_MINUTE_LIMIT must be >= 0")

        return self

    def is_sheets_configured(self) -> bool:
        return bool(self.google_sheets_api_key and self.google_sheets_spreadsheet_id)


settings = Settings()  # type: ignore[call-arg]  # singleton import via env settings
