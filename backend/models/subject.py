from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    period = Column(Integer, nullable=True)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    semester_number = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("period is null or (period >= 1 and period <= 7)", name="ck_subjects_period"),
        CheckConstraint("semester_number >= 1 and semester_number <= 12", name="ck_subjects_semester_number"),
    )
