from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Time, Uuid
from sqlalchemy.sql import func

from models.base import Base


class TimetableEntry(Base):
    __tablename__ = "timetables"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    day_of_week = Column(Integer, nullable=False)
    subject_id = Column(Uuid(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id"), nullable=False)
    semester_number = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("day_of_week >= 1 and day_of_week <= 7", name="ck_timetables_day"),
        CheckConstraint("semester_number >= 1 and semester_number <= 12", name="ck_timetables_semester_number"),
        CheckConstraint("start_time < end_time", name="ck_timetables_time_order"),
        Index("ix_timetables_batch_semester_day", "batch_id", "semester_number", "day_of_week"),
    )
