"""Feedback eligibility gate.

A student may rate a subject only while its session is running or within the
grace period after it ends. The gate is re-evaluated on demand (clients poll
every minute and after each submission); nothing here is event-driven.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.feedback import Feedback
from models.subject import Subject
from models.timetable_entry import TimetableEntry


DEFAULT_GRACE_MINUTES = 15
RECHECK_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class ScheduledSubject:
    subject_id: uuid.UUID
    name: str
    period: int | None
    start_time: time
    end_time: time
    batch_id: uuid.UUID
    semester_number: int
    has_submitted_feedback: bool = False


@dataclass(frozen=True)
class GateResult:
    subjects: list[ScheduledSubject]
    active: ScheduledSubject | None
    has_submitted_feedback: bool

    @property
    def can_submit(self) -> bool:
        return self.active is not None and not self.has_submitted_feedback


EMPTY_GATE = GateResult(subjects=[], active=None, has_submitted_feedback=False)


def parse_hhmm(value: str | time) -> time:
    """Parse "HH:MM" (or "HH:MM:SS" as stored by Postgres) into a time."""

    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"invalid time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def local_now(tz_name: str | None = None) -> datetime:
    """Current wall-clock time as a naive datetime in the school's timezone."""

    if tz_name:
        return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
    return datetime.now()


def feedback_window(
    entry: ScheduledSubject,
    on: date,
    *,
    grace_minutes: int = DEFAULT_GRACE_MINUTES,
) -> tuple[datetime, datetime]:
    start = datetime.combine(on, entry.start_time)
    end = datetime.combine(on, entry.end_time) + timedelta(minutes=grace_minutes)
    return start, end


def is_window_open(entry: ScheduledSubject, now: datetime, *, grace_minutes: int = DEFAULT_GRACE_MINUTES) -> bool:
    start, end = feedback_window(entry, now.date(), grace_minutes=grace_minutes)
    return start <= now <= end


def evaluate_gate(
    entries: Iterable[ScheduledSubject],
    submitted_subject_ids: Iterable[uuid.UUID],
    now: datetime,
    *,
    grace_minutes: int = DEFAULT_GRACE_MINUTES,
) -> GateResult:
    submitted = set(submitted_subject_ids)
    subjects = [
        replace(e, has_submitted_feedback=e.subject_id in submitted)
        for e in sorted(entries, key=lambda e: e.start_time)
    ]

    # Schedules are assumed non-overlapping; with bad data the earliest start wins.
    active = next((s for s in subjects if is_window_open(s, now, grace_minutes=grace_minutes)), None)
    return GateResult(
        subjects=subjects,
        active=active,
        has_submitted_feedback=bool(active and active.has_submitted_feedback),
    )


def load_daily_schedule(
    db: Session,
    *,
    batch_id: uuid.UUID,
    semester_number: int,
    day_of_week: int,
) -> list[ScheduledSubject]:
    rows = db.execute(
        select(
            Subject.id,
            Subject.name,
            Subject.period,
            TimetableEntry.start_time,
            TimetableEntry.end_time,
        )
        .select_from(TimetableEntry)
        .join(Subject, Subject.id == TimetableEntry.subject_id)
        .where(TimetableEntry.day_of_week == int(day_of_week))
        .where(TimetableEntry.batch_id == batch_id)
        .where(TimetableEntry.semester_number == int(semester_number))
        .order_by(TimetableEntry.start_time.asc())
    ).all()

    return [
        ScheduledSubject(
            subject_id=r.id,
            name=str(r.name),
            period=r.period,
            start_time=parse_hhmm(r.start_time),
            end_time=parse_hhmm(r.end_time),
            batch_id=batch_id,
            semester_number=int(semester_number),
        )
        for r in rows
    ]


def load_submitted_subject_ids(
    db: Session,
    *,
    student_id: uuid.UUID,
    batch_id: uuid.UUID,
    semester_number: int,
) -> set[uuid.UUID]:
    rows = db.execute(
        select(Feedback.subject_id)
        .where(Feedback.student_id == student_id)
        .where(Feedback.batch_id == batch_id)
        .where(Feedback.semester_number == int(semester_number))
    ).scalars()
    return set(rows)


def gate_for_student(
    db: Session,
    *,
    student_id: uuid.UUID,
    batch_id: uuid.UUID | None,
    semester_number: int | None,
    now: datetime,
    grace_minutes: int = DEFAULT_GRACE_MINUTES,
) -> GateResult:
    # Incomplete profile: not eligible, not an error.
    if batch_id is None or not semester_number:
        return EMPTY_GATE

    entries = load_daily_schedule(
        db,
        batch_id=batch_id,
        semester_number=int(semester_number),
        day_of_week=now.isoweekday(),
    )
    submitted = load_submitted_subject_ids(
        db,
        student_id=student_id,
        batch_id=batch_id,
        semester_number=int(semester_number),
    )
    return evaluate_gate(entries, submitted, now, grace_minutes=grace_minutes)
