from __future__ import annotations

from datetime import date as Date

from pydantic import BaseModel, ConfigDict, Field

from daylog.schemas.journal import MAX_REFLECTION_CHARS


class AiFeedbackRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: Date
    reflection: str = Field(default="", max_length=MAX_REFLECTION_CHARS)


class AiFeedbackResponse(BaseModel):
    feedback: str


class SheetsUploadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reference_date: Date | None = None


class SheetsUploadResponse(BaseModel):
    success: bool
    rows_added: int = 0
    message: str | None = None


class SheetRow(BaseModel):
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    category: str = ""
    activity: str = ""


class SheetsDownloadResponse(BaseModel):
    success: bool
    data: list[SheetRow] = Field(default_factory=list)
