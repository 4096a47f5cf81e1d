from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    subject_id: uuid.UUID
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class FeedbackResponseUpdate(BaseModel):
    # None clears the response.
    admin_response: str | None = Field(default=None, max_length=2000)


class FeedbackOut(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    student_name: str | None = None
    subject_id: uuid.UUID
    subject_name: str | None = None
    subject_period: int | None = None
    batch_id: uuid.UUID
    batch_name: str | None = None
    semester_number: int
    rating: int
    comment: str | None = None
    admin_response: str | None = None
    is_response_seen_by_student: bool
    created_at: datetime
