from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

CATEGORY_VALUE_RE = r"^[A-Za-z0-9_\-]{1,40}$"

DEFAULT_CATEGORY_COLOR = "bg-muted text-muted-foreground"


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str
    label: str
    color: str = DEFAULT_CATEGORY_COLOR


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(value="work", label="업무", color="bg-primary/10 text-primary"),
    Category(value="study", label="공부", color="bg-accent/10 text-accent"),
    Category(
        value="exercise",
        label="운동",
        color="bg-green-500/10 text-green-700 dark:text-green-400",
    ),
    Category(
        value="meal",
        label="식사",
        color="bg-orange-500/10 text-orange-700 dark:text-orange-400",
    ),
    Category(
        value="rest",
        label="휴식",
        color="bg-purple-500/10 text-purple-700 dark:text-purple-400",
    ),
    Category(value="other", label="기타", color=DEFAULT_CATEGORY_COLOR),
)


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str = Field(pattern=CATEGORY_VALUE_RE)
    label: str = Field(min_length=1, max_length=40)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, max_length=200)

    @field_validator("label")
    @classmethod
    def strip_label(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("label is required")
        return text


class CategoryUpdate(BaseModel):
    # `value` is immutable once created; only display fields can change.
    model_config = ConfigDict(extra="forbid")

    label: str | None = Field(default=None, min_length=1, max_length=40)
    color: str | None = Field(default=None, max_length=200)

    @field_validator("label")
    @classmethod
    def strip_label(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError("label must not be blank")
        return text
