from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class SubjectBase(BaseModel):
    name: str = Field(min_length=1)
    period: int | None = Field(default=None, ge=1, le=7)
    batch_id: uuid.UUID
    semester_number: int = Field(ge=1, le=12)


class SubjectCreate(SubjectBase):
    pass


class SubjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    period: int | None = Field(default=None, ge=1, le=7)
    batch_id: uuid.UUID | None = None
    semester_number: int | None = Field(default=None, ge=1, le=12)


class SubjectOut(BaseModel):
    id: uuid.UUID
    name: str
    period: int | None = None
    batch_id: uuid.UUID
    semester_number: int
    created_at: datetime

    class Config:
        from_attributes = True


class SubjectDeleteResult(BaseModel):
    ok: bool = True
    deleted_timetable_entries: int
    deleted_feedback: int
