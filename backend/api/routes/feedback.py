from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.database import get_db
from models.batch import Batch
from models.feedback import Feedback
from models.subject import Subject
from models.user import User
from schemas.feedback import FeedbackOut, FeedbackResponseUpdate


router = APIRouter()

logger = logging.getLogger(__name__)


def feedback_query():
    """Feedback joined with the names the admin/student views display."""

    return (
        select(
            Feedback,
            Subject.name.label("subject_name"),
            Subject.period.label("subject_period"),
            Batch.name.label("batch_name"),
            User.first_name,
            User.last_name,
        )
        .select_from(Feedback)
        .outerjoin(Subject, Subject.id == Feedback.subject_id)
        .outerjoin(Batch, Batch.id == Feedback.batch_id)
        .outerjoin(User, User.id == Feedback.student_id)
    )


def feedback_out(row) -> FeedbackOut:
    fb: Feedback = row[0]
    student_name = " ".join(p for p in (row.first_name, row.last_name) if p) or None
    return FeedbackOut(
        id=fb.id,
        student_id=fb.student_id,
        student_name=student_name,
        subject_id=fb.subject_id,
        subject_name=row.subject_name,
        subject_period=row.subject_period,
        batch_id=fb.batch_id,
        batch_name=row.batch_name,
        semester_number=int(fb.semester_number),
        rating=int(fb.rating),
        comment=fb.comment,
        admin_response=fb.admin_response,
        is_response_seen_by_student=bool(fb.is_response_seen_by_student),
        created_at=fb.created_at,
    )


def _load_one(db: Session, feedback_id: uuid.UUID) -> FeedbackOut:
    row = db.execute(feedback_query().where(Feedback.id == feedback_id)).first()
    if row is None:
        raise HTTPException(status_code=404, detail="FEEDBACK_NOT_FOUND")
    return feedback_out(row)


@router.get("/", response_model=list[FeedbackOut])
def list_feedback(
    batch_id: uuid.UUID | None = Query(default=None),
    semester_number: int | None = Query(default=None, ge=1, le=12),
    subject_id: uuid.UUID | None = Query(default=None),
    rating: int | None = Query(default=None, ge=1, le=5),
    answered: bool | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[FeedbackOut]:
    q = feedback_query().order_by(Feedback.created_at.desc())
    if batch_id is not None:
        q = q.where(Feedback.batch_id == batch_id)
    if semester_number is not None:
        q = q.where(Feedback.semester_number == int(semester_number))
    if subject_id is not None:
        q = q.where(Feedback.subject_id == subject_id)
    if rating is not None:
        q = q.where(Feedback.rating == int(rating))
    if answered is True:
        q = q.where(Feedback.admin_response.is_not(None))
    elif answered is False:
        q = q.where(Feedback.admin_response.is_(None))
    if limit is not None:
        q = q.limit(limit)
    return [feedback_out(r) for r in db.execute(q).all()]


@router.get("/unanswered", response_model=list[FeedbackOut])
def list_unanswered_feedback(
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[FeedbackOut]:
    q = feedback_query().where(Feedback.admin_response.is_(None)).order_by(Feedback.created_at.desc())
    return [feedback_out(r) for r in db.execute(q).all()]


@router.put("/{feedback_id}/response", response_model=FeedbackOut)
def set_admin_response(
    feedback_id: uuid.UUID,
    payload: FeedbackResponseUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> FeedbackOut:
    fb = db.get(Feedback, feedback_id)
    if fb is None:
        raise HTTPException(status_code=404, detail="FEEDBACK_NOT_FOUND")

    response = (payload.admin_response or "").strip() or None
    fb.admin_response = response
    # Re-arm the student's notification for every new response.
    fb.is_response_seen_by_student = response is None
    db.commit()

    logger.info("Feedback response updated feedback_id=%s by=%s cleared=%s", feedback_id, admin.id, response is None)
    return _load_one(db, feedback_id)


@router.delete("/{feedback_id}")
def delete_feedback(
    feedback_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    fb = db.get(Feedback, feedback_id)
    if fb is None:
        raise HTTPException(status_code=404, detail="FEEDBACK_NOT_FOUND")
    db.delete(fb)
    db.commit()
    return {"ok": True}
