from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


class Batch(Base):
    __tablename__ = "batches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
