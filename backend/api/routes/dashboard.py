from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_admin
from core.database import get_db
from models.feedback import Feedback
from models.subject import Subject
from models.user import User
from schemas.analytics import DashboardSummaryOut, SubjectStatsOut
from services.analytics import subject_feedback_stats


router = APIRouter()


def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar_one() or 0)


def _admin_subject_stats(db: Session, user: User) -> list[SubjectStatsOut]:
    require_admin(user)
    return [SubjectStatsOut.model_validate(s) for s in subject_feedback_stats(db)]


@router.get("/summary", response_model=DashboardSummaryOut)
def get_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DashboardSummaryOut:
    today = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    tomorrow = today + timedelta(days=1)

    stats: list[SubjectStatsOut] | None
    try:
        stats = _admin_subject_stats(db, current_user)
    except HTTPException as exc:
        # Non-admins simply don't get the aggregates.
        if exc.status_code != 403:
            raise
        stats = None

    return DashboardSummaryOut(
        total_students=_count(db, select(func.count(User.id)).where(User.is_admin.is_(False))),
        total_subjects=_count(db, select(func.count(Subject.id))),
        total_feedback=_count(db, select(func.count(Feedback.id))),
        feedback_today=_count(
            db,
            select(func.count(Feedback.id))
            .where(Feedback.created_at >= today)
            .where(Feedback.created_at < tomorrow),
        ),
        subject_stats=stats,
    )
