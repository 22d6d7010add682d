from __future__ import annotations

from datetime import date as Date

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_REFLECTION_CHARS = 2000
MAX_WEEKLY_GOALS = 10
MAX_GOAL_CHARS = 200


class ReflectionUpsert(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: Date
    content: str = Field(max_length=MAX_REFLECTION_CHARS)


class ReflectionOut(BaseModel):
    date: Date
    content: str | None = None
    updated_at: str | None = None


class WeeklyGoalsUpsert(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Any day of the target week; normalized to its Monday on save.
    week_start: Date
    goals: list[str] = Field(default_factory=list, max_length=MAX_WEEKLY_GOALS)

    @field_validator("goals")
    @classmethod
    def validate_goals(cls, value: list[str]) -> list[str]:
        out: list[str] = []
        for raw in value:
            text = raw.strip()
            if not text:
                raise ValueError("목표를 입력해주세요")
            if len(text) > MAX_GOAL_CHARS:
                raise ValueError("목표는 200자 이내로 입력해주세요")
            out.append(text)
        return out


class WeeklyGoalsOut(BaseModel):
    week_start: Date
    goals: list[str] = Field(default_factory=list)
