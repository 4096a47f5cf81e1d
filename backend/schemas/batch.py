from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class BatchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class BatchUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class BatchOut(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
