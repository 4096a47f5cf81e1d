from __future__ import annotations

import uuid
from datetime import time

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.timetable_entry import TimetableEntry


def intervals_overlap(s1: time, e1: time, s2: time, e2: time) -> bool:
    """Half-open [s, e) intervals; touching ends do not conflict."""

    return s1 < e2 and e1 > s2


def find_conflict(
    db: Session,
    *,
    batch_id: uuid.UUID,
    semester_number: int,
    day_of_week: int,
    start_time: time,
    end_time: time,
    exclude_entry_id: uuid.UUID | None = None,
) -> TimetableEntry | None:
    """Return the first existing entry on the same batch/semester/day overlapping the slot."""

    q = (
        select(TimetableEntry)
        .where(TimetableEntry.batch_id == batch_id)
        .where(TimetableEntry.semester_number == int(semester_number))
        .where(TimetableEntry.day_of_week == int(day_of_week))
        .order_by(TimetableEntry.start_time.asc())
    )
    if exclude_entry_id is not None:
        q = q.where(TimetableEntry.id != exclude_entry_id)

    for other in db.execute(q).scalars():
        if intervals_overlap(start_time, end_time, other.start_time, other.end_time):
            return other
    return None
