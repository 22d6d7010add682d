from __future__ import annotations

from datetime import date as Date

from pydantic import BaseModel, ConfigDict, Field

from daylog.schemas.time_blocks import TimeBlock


class CategoryTotal(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_minutes: int = 0
    display_text: str = "0분"
    percentage: int = Field(default=0, ge=0, le=100)
    blocks: list[TimeBlock] = Field(default_factory=list)


class CategoryStatRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str
    label: str
    color: str
    total_minutes: int
    hours: float
    display_text: str
    percentage: int


class StatsSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_date: Date
    end_date: Date
    total_minutes: int
    total_hours: float
    total_display_text: str
    categories: list[CategoryStatRow] = Field(default_factory=list)
    excluded_count: int = 0
