from __future__ import annotations

from datetime import date as Date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

TIME_RE = r"^\d{2}:\d{2}$"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_clock(value: str | None) -> str | None:
    if value is None:
        return None
    h_s, m_s = value.split(":")
    if not (0 <= int(h_s) <= 23 and 0 <= int(m_s) <= 59):
        raise ValueError("time must be between 00:00 and 23:59")
    return value


class TimeBlock(BaseModel):
    """A stored block as the aggregator sees it.

    Deliberately lenient: rows may come from storage or a spreadsheet import
    with empty or malformed times, and the aggregator decides what to do with
    them.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    date: Date | None = None
    start_time: str | None = None
    end_time: str | None = None
    category: str | None = None
    activity: str = ""

    @field_validator("activity", mode="before")
    @classmethod
    def none_activity_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class TimeBlockCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: Date
    start_time: str | None = Field(default=None, pattern=TIME_RE, description="HH:MM")
    end_time: str | None = Field(default=None, pattern=TIME_RE, description="HH:MM")
    category: str = Field(min_length=1, max_length=64)
    activity: str = Field(default="", max_length=200)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def blank_time_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        return _check_clock(value)


class TimeBlockUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: Date | None = None
    start_time: str | None = Field(default=None, pattern=TIME_RE)
    end_time: str | None = Field(default=None, pattern=TIME_RE)
    category: str | None = Field(default=None, min_length=1, max_length=64)
    activity: str | None = Field(default=None, max_length=200)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def blank_time_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        return _check_clock(value)


class TimeBlockRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str
    date: Date
    start_time: str | None = None
    end_time: str | None = None
    category: str
    activity: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("activity", mode="before")
    @classmethod
    def none_activity_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value
