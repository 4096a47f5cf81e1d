from __future__ import annotations

import uuid

from pydantic import BaseModel


class SubjectStatsOut(BaseModel):
    subject_id: uuid.UUID
    subject_name: str | None = None
    average_rating: float
    feedback_count: int
    rating_counts: dict[int, int]

    class Config:
        from_attributes = True


class TrendPointOut(BaseModel):
    date: str
    submission_count: int
    average_rating: float | None = None

    class Config:
        from_attributes = True


class TopBottomOut(BaseModel):
    top: list[SubjectStatsOut]
    bottom: list[SubjectStatsOut]


class DashboardSummaryOut(BaseModel):
    total_students: int
    total_subjects: int
    total_feedback: int
    feedback_today: int
    # Admin-only; omitted for everyone else.
    subject_stats: list[SubjectStatsOut] | None = None
