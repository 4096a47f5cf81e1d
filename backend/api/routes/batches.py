from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_admin
from core.database import get_db
from models.batch import Batch
from models.subject import Subject
from models.timetable_entry import TimetableEntry
from schemas.batch import BatchCreate, BatchOut, BatchUpdate


router = APIRouter()

logger = logging.getLogger(__name__)


def _ensure_unique_batch_name(db: Session, *, name: str, exclude_batch_id: uuid.UUID | None) -> None:
    q = select(Batch.id).where(func.lower(Batch.name) == func.lower(name))
    if exclude_batch_id is not None:
        q = q.where(Batch.id != exclude_batch_id)
    if db.execute(q.limit(1)).first() is not None:
        raise HTTPException(status_code=409, detail="BATCH_NAME_ALREADY_EXISTS")


# Students need the list to complete their profile.
@router.get("/", response_model=list[BatchOut], dependencies=[Depends(get_current_user)])
def list_batches(db: Session = Depends(get_db)) -> list[BatchOut]:
    return db.execute(select(Batch).order_by(Batch.name.asc())).scalars().all()


@router.post("/", response_model=BatchOut)
def create_batch(
    payload: BatchCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> BatchOut:
    name = payload.name.strip()
    _ensure_unique_batch_name(db, name=name, exclude_batch_id=None)

    batch = Batch(name=name)
    db.add(batch)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(batch)
    return batch


@router.patch("/{batch_id}", response_model=BatchOut)
def update_batch(
    batch_id: uuid.UUID,
    payload: BatchUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> BatchOut:
    batch = db.get(Batch, batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="BATCH_NOT_FOUND")

    name = payload.name.strip()
    _ensure_unique_batch_name(db, name=name, exclude_batch_id=batch_id)
    batch.name = name
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(batch)
    return batch


@router.delete("/{batch_id}")
def delete_batch(
    batch_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    batch = db.get(Batch, batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="BATCH_NOT_FOUND")

    in_use = (
        db.execute(select(Subject.id).where(Subject.batch_id == batch_id).limit(1)).first() is not None
        or db.execute(select(TimetableEntry.id).where(TimetableEntry.batch_id == batch_id).limit(1)).first()
        is not None
    )
    if in_use:
        logger.warning("Refusing to delete batch in use batch_id=%s", batch_id)
        raise HTTPException(status_code=409, detail="BATCH_IN_USE")

    db.delete(batch)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="BATCH_IN_USE")
    return {"ok": True}
