from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.database import get_db
from models.feedback import Feedback
from models.subject import Subject
from schemas.analytics import SubjectStatsOut, TopBottomOut, TrendPointOut
from services.analytics import (
    ALLOWED_TIMEFRAMES,
    feedback_trends,
    subject_feedback_stats,
    summarize_by_subject,
    top_and_bottom,
)


router = APIRouter()


def _validate_timeframe(days: int | None) -> int | None:
    if days is not None and int(days) not in ALLOWED_TIMEFRAMES:
        raise HTTPException(
            status_code=422,
            detail={"code": "INVALID_TIMEFRAME", "allowed": list(ALLOWED_TIMEFRAMES)},
        )
    return days


@router.get("/subjects", response_model=list[SubjectStatsOut])
def get_subject_stats(
    batch_id: uuid.UUID | None = Query(default=None),
    semester_number: int | None = Query(default=None, ge=1, le=12),
    timeframe_days: int | None = Query(default=None),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[SubjectStatsOut]:
    stats = subject_feedback_stats(
        db,
        batch_id=batch_id,
        semester_number=semester_number,
        timeframe_days=_validate_timeframe(timeframe_days),
    )
    return [SubjectStatsOut.model_validate(s) for s in stats]


@router.get("/trends", response_model=list[TrendPointOut])
def get_trends(
    days: int = Query(default=30),
    batch_id: uuid.UUID | None = Query(default=None),
    semester_number: int | None = Query(default=None, ge=1, le=12),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[TrendPointOut]:
    points = feedback_trends(
        db,
        days=int(_validate_timeframe(days)),
        batch_id=batch_id,
        semester_number=semester_number,
        now=datetime.now(timezone.utc),
    )
    return [TrendPointOut.model_validate(p) for p in points]


@router.get("/top-bottom", response_model=TopBottomOut)
def get_top_bottom(
    limit: int = Query(default=3, ge=1, le=20),
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> TopBottomOut:
    rows = db.execute(
        select(Feedback.subject_id, Subject.name.label("subject_name"), Feedback.rating)
        .join(Subject, Subject.id == Feedback.subject_id)
    ).mappings().all()
    top, bottom = top_and_bottom(summarize_by_subject(rows), n=limit)
    return TopBottomOut(
        top=[SubjectStatsOut.model_validate(s) for s in top],
        bottom=[SubjectStatsOut.model_validate(s) for s in bottom],
    )
