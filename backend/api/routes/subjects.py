from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.database import get_db
from models.batch import Batch
from models.subject import Subject
from schemas.subject import SubjectCreate, SubjectDeleteResult, SubjectOut, SubjectUpdate
from services.subject_service import delete_subject_and_dependents


router = APIRouter()

logger = logging.getLogger(__name__)


def _get_batch(db: Session, batch_id: uuid.UUID) -> Batch:
    batch = db.get(Batch, batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="BATCH_NOT_FOUND")
    return batch


@router.get("/", response_model=list[SubjectOut])
def list_subjects(
    batch_id: uuid.UUID | None = Query(default=None),
    semester_number: int | None = Query(default=None, ge=1, le=12),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    q = select(Subject).order_by(Subject.name.asc())
    if batch_id is not None:
        q = q.where(Subject.batch_id == batch_id)
    if semester_number is not None:
        q = q.where(Subject.semester_number == int(semester_number))
    return db.execute(q).scalars().all()


@router.post("/", response_model=SubjectOut)
def create_subject(
    payload: SubjectCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectOut:
    _get_batch(db, payload.batch_id)

    subject = Subject(
        name=payload.name.strip(),
        period=payload.period,
        batch_id=payload.batch_id,
        semester_number=payload.semester_number,
    )
    db.add(subject)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(subject)
    return subject


@router.patch("/{subject_id}", response_model=SubjectOut)
def update_subject(
    subject_id: uuid.UUID,
    payload: SubjectUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectOut:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=404, detail="SUBJECT_NOT_FOUND")

    updates = payload.model_dump(exclude_unset=True)
    if updates.get("batch_id") is not None:
        _get_batch(db, updates["batch_id"])
    for field in ("name", "batch_id", "semester_number"):
        # Required columns: explicit null is not a valid update.
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=422, detail=f"{field.upper()}_REQUIRED")
    for k, v in updates.items():
        setattr(subject, k, v.strip() if isinstance(v, str) else v)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(subject)
    return subject


@router.delete("/{subject_id}", response_model=SubjectDeleteResult)
def delete_subject(
    subject_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectDeleteResult:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=404, detail="SUBJECT_NOT_FOUND")

    try:
        result = delete_subject_and_dependents(db, subject)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.exception("Subject delete failed subject_id=%s", subject_id)
        raise HTTPException(status_code=409, detail="CONFLICT")

    logger.info(
        "Deleted subject subject_id=%s timetable_entries=%d feedback=%d",
        subject_id,
        result.timetable_entries,
        result.feedback,
    )
    return SubjectDeleteResult(
        ok=True,
        deleted_timetable_entries=result.timetable_entries,
        deleted_feedback=result.feedback,
    )
