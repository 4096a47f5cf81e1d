from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


class User(Base):
    """Login credentials plus the student/admin profile."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="SET NULL"), nullable=True)
    semester_number = Column(Integer, nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "semester_number is null or (semester_number >= 1 and semester_number <= 12)",
            name="ck_users_semester_number",
        ),
    )

    @property
    def profile_complete(self) -> bool:
        if self.is_admin:
            return True
        return bool(self.first_name and self.last_name and self.batch_id is not None and self.semester_number)
