from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from services.timetable_import import normalize_time


class TimetableEntryBase(BaseModel):
    day_of_week: int = Field(ge=1, le=7)
    subject_id: uuid.UUID
    batch_id: uuid.UUID
    semester_number: int = Field(ge=1, le=12)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, v: str) -> str:
        normalized = normalize_time(v)
        if normalized is None:
            raise ValueError("time must be HH:MM")
        return normalized


class TimetableEntryCreate(TimetableEntryBase):
    pass


class TimetableEntryUpdate(TimetableEntryBase):
    pass


class TimetableEntryOut(BaseModel):
    id: uuid.UUID
    day_of_week: int
    subject_id: uuid.UUID
    subject_name: str | None = None
    batch_id: uuid.UUID
    semester_number: int
    start_time: str
    end_time: str
    created_at: datetime


class ImportRowOut(BaseModel):
    row_number: int
    day_of_week: int
    subject_id: uuid.UUID
    batch_id: uuid.UUID
    semester_number: int
    start_time: str
    end_time: str


class ImportPreviewOut(BaseModel):
    valid_rows: list[ImportRowOut]
    errors: list[str]


class ImportResultOut(BaseModel):
    ok: bool = True
    inserted: int


class DailySubjectOut(BaseModel):
    subject_id: uuid.UUID
    name: str
    period: int | None = None
    start_time: str
    end_time: str
    batch_id: uuid.UUID
    semester_number: int
    has_submitted_feedback: bool


class DailySubjectsOut(BaseModel):
    subjects: list[DailySubjectOut]
    active_subject: DailySubjectOut | None = None
    has_submitted_feedback: bool = False
    can_submit: bool = False
    recheck_after_seconds: int
