from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.config import settings
from core.database import get_db
from models.batch import Batch
from models.subject import Subject
from models.timetable_entry import TimetableEntry
from schemas.timetable import (
    ImportPreviewOut,
    ImportResultOut,
    ImportRowOut,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
)
from services.eligibility import parse_hhmm
from services.timetable_conflicts import find_conflict
from services.timetable_import import ImportFileError, ImportResult, build_template, read_xlsx_rows, validate_rows


router = APIRouter()

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _entry_out(entry: TimetableEntry, subject_name: str | None) -> TimetableEntryOut:
    return TimetableEntryOut(
        id=entry.id,
        day_of_week=int(entry.day_of_week),
        subject_id=entry.subject_id,
        subject_name=subject_name,
        batch_id=entry.batch_id,
        semester_number=int(entry.semester_number),
        start_time=entry.start_time.strftime("%H:%M"),
        end_time=entry.end_time.strftime("%H:%M"),
        created_at=entry.created_at,
    )


def _validate_entry(db: Session, payload: TimetableEntryCreate | TimetableEntryUpdate) -> Subject:
    if db.get(Batch, payload.batch_id) is None:
        raise HTTPException(status_code=404, detail="BATCH_NOT_FOUND")
    subject = db.get(Subject, payload.subject_id)
    if subject is None:
        raise HTTPException(status_code=404, detail="SUBJECT_NOT_FOUND")
    if parse_hhmm(payload.start_time) >= parse_hhmm(payload.end_time):
        raise HTTPException(status_code=400, detail="START_TIME_NOT_BEFORE_END_TIME")
    return subject


def _reject_conflicts(
    db: Session,
    payload: TimetableEntryCreate | TimetableEntryUpdate,
    *,
    exclude_entry_id: uuid.UUID | None,
) -> None:
    conflict = find_conflict(
        db,
        batch_id=payload.batch_id,
        semester_number=payload.semester_number,
        day_of_week=payload.day_of_week,
        start_time=parse_hhmm(payload.start_time),
        end_time=parse_hhmm(payload.end_time),
        exclude_entry_id=exclude_entry_id,
    )
    if conflict is not None:
        logger.info(
            "Timetable conflict batch_id=%s semester=%s day=%s %s-%s with entry_id=%s",
            payload.batch_id,
            payload.semester_number,
            payload.day_of_week,
            payload.start_time,
            payload.end_time,
            conflict.id,
        )
        raise HTTPException(
            status_code=409,
            detail={
                "code": "TIMETABLE_CONFLICT",
                "conflicting_entry_id": str(conflict.id),
            },
        )


@router.get("/", response_model=list[TimetableEntryOut])
def list_timetable(
    batch_id: uuid.UUID | None = Query(default=None),
    semester_number: int | None = Query(default=None, ge=1, le=12),
    day_of_week: int | None = Query(default=None, ge=1, le=7),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    q = (
        select(TimetableEntry, Subject.name)
        .outerjoin(Subject, Subject.id == TimetableEntry.subject_id)
        .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.start_time.asc())
    )
    if batch_id is not None:
        q = q.where(TimetableEntry.batch_id == batch_id)
    if semester_number is not None:
        q = q.where(TimetableEntry.semester_number == int(semester_number))
    if day_of_week is not None:
        q = q.where(TimetableEntry.day_of_week == int(day_of_week))
    return [_entry_out(entry, name) for entry, name in db.execute(q).all()]


@router.post("/", response_model=TimetableEntryOut)
def create_timetable_entry(
    payload: TimetableEntryCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    subject = _validate_entry(db, payload)
    _reject_conflicts(db, payload, exclude_entry_id=None)

    entry = TimetableEntry(
        day_of_week=payload.day_of_week,
        subject_id=payload.subject_id,
        batch_id=payload.batch_id,
        semester_number=payload.semester_number,
        start_time=parse_hhmm(payload.start_time),
        end_time=parse_hhmm(payload.end_time),
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(entry)
    return _entry_out(entry, subject.name)


@router.put("/{entry_id}", response_model=TimetableEntryOut)
def update_timetable_entry(
    entry_id: uuid.UUID,
    payload: TimetableEntryUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    entry = db.get(TimetableEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="TIMETABLE_ENTRY_NOT_FOUND")

    subject = _validate_entry(db, payload)
    _reject_conflicts(db, payload, exclude_entry_id=entry_id)

    entry.day_of_week = payload.day_of_week
    entry.subject_id = payload.subject_id
    entry.batch_id = payload.batch_id
    entry.semester_number = payload.semester_number
    entry.start_time = parse_hhmm(payload.start_time)
    entry.end_time = parse_hhmm(payload.end_time)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(entry)
    return _entry_out(entry, subject.name)


@router.delete("/{entry_id}")
def delete_timetable_entry(
    entry_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    entry = db.get(TimetableEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="TIMETABLE_ENTRY_NOT_FOUND")
    db.delete(entry)
    db.commit()
    return {"ok": True}


def _validate_upload(file: UploadFile, db: Session) -> ImportResult:
    data = file.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="FILE_TOO_LARGE")
    try:
        rows = read_xlsx_rows(data)
    except ImportFileError:
        raise HTTPException(status_code=400, detail="INVALID_SPREADSHEET")

    # Lookups run against the full current catalogue.
    subjects = db.execute(select(Subject)).scalars().all()
    batches = db.execute(select(Batch)).scalars().all()
    result = validate_rows(rows, subjects=subjects, batches=batches)
    logger.info(
        "Validated timetable import file=%r rows=%d valid=%d errors=%d",
        file.filename,
        len(rows),
        len(result.valid_rows),
        len(result.errors),
    )
    return result


@router.get("/import/template")
def download_import_template(_admin=Depends(require_admin)) -> Response:
    return Response(
        content=build_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="timetable_template.xlsx"'},
    )


@router.post("/import/preview", response_model=ImportPreviewOut)
def preview_import(
    file: UploadFile = File(...),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> ImportPreviewOut:
    result = _validate_upload(file, db)
    return ImportPreviewOut(
        valid_rows=[ImportRowOut(**row.to_dict()) for row in result.valid_rows],
        errors=result.errors,
    )


@router.post("/import", response_model=ImportResultOut)
def import_timetable(
    file: UploadFile = File(...),
    skip_invalid: bool = Query(default=False),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = _validate_upload(file, db)
    if result.errors and not skip_invalid:
        return JSONResponse(
            status_code=422,
            content={"code": "IMPORT_VALIDATION_FAILED", "errors": result.errors},
        )
    if not result.valid_rows:
        raise HTTPException(status_code=400, detail="NO_ROWS")

    # One batch insert; overlaps with existing entries are not checked here.
    db.add_all(
        [
            TimetableEntry(
                day_of_week=row.day_of_week,
                subject_id=row.subject_id,
                batch_id=row.batch_id,
                semester_number=row.semester_number,
                start_time=parse_hhmm(row.start_time),
                end_time=parse_hhmm(row.end_time),
            )
            for row in result.valid_rows
        ]
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.exception("Timetable import insert failed file=%r", file.filename)
        raise HTTPException(status_code=409, detail="CONFLICT")

    logger.info("Imported timetable entries count=%d file=%r", len(result.valid_rows), file.filename)
    return ImportResultOut(ok=True, inserted=len(result.valid_rows))
