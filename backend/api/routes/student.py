from __future__ import annotations

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import require_student
from api.routes.feedback import feedback_out, feedback_query
from core.config import settings
from core.database import get_db
from models.feedback import Feedback
from models.subject import Subject
from models.timetable_entry import TimetableEntry
from models.user import User
from schemas.feedback import FeedbackCreate, FeedbackOut
from schemas.timetable import DailySubjectOut, DailySubjectsOut, TimetableEntryOut
from services.eligibility import RECHECK_INTERVAL_SECONDS, ScheduledSubject, gate_for_student, local_now


router = APIRouter()

logger = logging.getLogger(__name__)


def get_now() -> datetime:
    """Wall-clock "now" for the feedback gate (overridable in tests)."""

    return local_now(settings.school_timezone)


def _daily_out(s: ScheduledSubject) -> DailySubjectOut:
    return DailySubjectOut(
        subject_id=s.subject_id,
        name=s.name,
        period=s.period,
        start_time=s.start_time.strftime("%H:%M"),
        end_time=s.end_time.strftime("%H:%M"),
        batch_id=s.batch_id,
        semester_number=s.semester_number,
        has_submitted_feedback=s.has_submitted_feedback,
    )


@router.get("/daily-subjects", response_model=DailySubjectsOut)
def get_daily_subjects(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> DailySubjectsOut:
    gate = gate_for_student(
        db,
        student_id=student.id,
        batch_id=student.batch_id,
        semester_number=student.semester_number,
        now=now,
        grace_minutes=settings.feedback_grace_minutes,
    )
    return DailySubjectsOut(
        subjects=[_daily_out(s) for s in gate.subjects],
        active_subject=_daily_out(gate.active) if gate.active is not None else None,
        has_submitted_feedback=gate.has_submitted_feedback,
        can_submit=gate.can_submit,
        recheck_after_seconds=RECHECK_INTERVAL_SECONDS,
    )


@router.get("/timetable", response_model=list[TimetableEntryOut])
def get_weekly_timetable(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    if student.batch_id is None or not student.semester_number:
        return []

    q = (
        select(TimetableEntry, Subject.name)
        .join(Subject, Subject.id == TimetableEntry.subject_id)
        .where(TimetableEntry.batch_id == student.batch_id)
        .where(TimetableEntry.semester_number == int(student.semester_number))
        .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.start_time.asc())
    )
    return [
        TimetableEntryOut(
            id=entry.id,
            day_of_week=int(entry.day_of_week),
            subject_id=entry.subject_id,
            subject_name=name,
            batch_id=entry.batch_id,
            semester_number=int(entry.semester_number),
            start_time=entry.start_time.strftime("%H:%M"),
            end_time=entry.end_time.strftime("%H:%M"),
            created_at=entry.created_at,
        )
        for entry, name in db.execute(q).all()
    ]


@router.post("/feedback", response_model=FeedbackOut)
def submit_feedback(
    payload: FeedbackCreate,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> FeedbackOut:
    if student.batch_id is None or not student.semester_number:
        raise HTTPException(status_code=409, detail="PROFILE_INCOMPLETE")

    gate = gate_for_student(
        db,
        student_id=student.id,
        batch_id=student.batch_id,
        semester_number=student.semester_number,
        now=now,
        grace_minutes=settings.feedback_grace_minutes,
    )
    if gate.active is None or gate.active.subject_id != payload.subject_id:
        logger.info(
            "Feedback rejected (window closed) student_id=%s subject_id=%s at=%s",
            student.id,
            payload.subject_id,
            now.isoformat(timespec="minutes"),
        )
        raise HTTPException(status_code=403, detail="FEEDBACK_WINDOW_CLOSED")
    if gate.has_submitted_feedback:
        raise HTTPException(status_code=409, detail="FEEDBACK_ALREADY_SUBMITTED")

    fb = Feedback(
        student_id=student.id,
        subject_id=payload.subject_id,
        batch_id=student.batch_id,
        semester_number=int(student.semester_number),
        rating=int(payload.rating),
        comment=(payload.comment or "").strip() or None,
        is_response_seen_by_student=True,
    )
    db.add(fb)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Feedback insert failed student_id=%s subject_id=%s", student.id, payload.subject_id)
        raise HTTPException(status_code=409, detail="FEEDBACK_SUBMISSION_FAILED")

    row = db.execute(feedback_query().where(Feedback.id == fb.id)).first()
    return feedback_out(row)


@router.get("/feedback", response_model=list[FeedbackOut])
def get_feedback_history(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
) -> list[FeedbackOut]:
    q = feedback_query().where(Feedback.student_id == student.id).order_by(Feedback.created_at.desc())
    return [feedback_out(r) for r in db.execute(q).all()]


@router.get("/notifications", response_model=list[FeedbackOut])
def get_notifications(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
) -> list[FeedbackOut]:
    q = (
        feedback_query()
        .where(Feedback.student_id == student.id)
        .where(Feedback.admin_response.is_not(None))
        .where(Feedback.is_response_seen_by_student.is_(False))
        .order_by(Feedback.created_at.desc())
    )
    return [feedback_out(r) for r in db.execute(q).all()]


@router.post("/notifications/seen-all")
def mark_all_notifications_seen(
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
) -> dict:
    fbs = (
        db.execute(
            select(Feedback)
            .where(Feedback.student_id == student.id)
            .where(Feedback.is_response_seen_by_student.is_(False))
        )
        .scalars()
        .all()
    )
    for fb in fbs:
        fb.is_response_seen_by_student = True
    db.commit()
    return {"ok": True, "updated": len(fbs)}


@router.post("/notifications/{feedback_id}/seen")
def mark_notification_seen(
    feedback_id: uuid.UUID,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
) -> dict:
    fb = db.get(Feedback, feedback_id)
    # Only the owning student may flip the flag.
    if fb is None or fb.student_id != student.id:
        raise HTTPException(status_code=404, detail="FEEDBACK_NOT_FOUND")
    fb.is_response_seen_by_student = True
    db.commit()
    return {"ok": True}
