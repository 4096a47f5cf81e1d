from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
    id: uuid.UUID
    username: str
    first_name: str | None = None
    last_name: str | None = None
    is_admin: bool
    is_active: bool
    batch_id: uuid.UUID | None = None
    batch_name: str | None = None
    semester_number: int | None = None
    avatar_url: str | None = None
    profile_complete: bool
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    batch_id: uuid.UUID | None = None
    semester_number: int | None = Field(default=None, ge=1, le=12)
