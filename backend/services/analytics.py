"""Feedback analytics.

Two flavours of the same numbers: pure reducers over already-fetched rows
(``summarize_by_subject``, ``trend_points``) and SQL aggregate queries
(``subject_feedback_stats``, ``feedback_trends``) that let the database do the
grouping. Empty input always yields an empty result.
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from models.feedback import Feedback
from models.subject import Subject


ALLOWED_TIMEFRAMES = (7, 30, 90)
RATING_VALUES = (1, 2, 3, 4, 5)


@dataclass
class SubjectStats:
    subject_id: uuid.UUID
    subject_name: str | None
    average_rating: float
    feedback_count: int
    rating_counts: dict[int, int] = field(default_factory=lambda: {r: 0 for r in RATING_VALUES})


@dataclass(frozen=True)
class TrendPoint:
    date: str
    submission_count: int
    average_rating: float | None


def _get(row: Any, key: str, default: Any = None) -> Any:
    if isinstance(row, Mapping):
        return row.get(key, default)
    return getattr(row, key, default)


def _average(total: float, count: int) -> float:
    return round(total / count, 2) if count else 0.0


def _as_utc_date(value: datetime | date | str) -> date:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def summarize_by_subject(rows: Iterable[Any]) -> list[SubjectStats]:
    """Per-subject average (2 dp), count and 1-5 histogram, in first-seen order."""

    buckets: OrderedDict[Any, dict[str, Any]] = OrderedDict()
    for row in rows:
        subject_id = _get(row, "subject_id")
        rating = int(_get(row, "rating"))
        bucket = buckets.setdefault(
            subject_id,
            {"name": _get(row, "subject_name"), "ratings": []},
        )
        bucket["ratings"].append(rating)

    out: list[SubjectStats] = []
    for subject_id, bucket in buckets.items():
        ratings: list[int] = bucket["ratings"]
        counts = {r: 0 for r in RATING_VALUES}
        for r in ratings:
            if r in counts:
                counts[r] += 1
        out.append(
            SubjectStats(
                subject_id=subject_id,
                subject_name=bucket["name"],
                average_rating=_average(sum(ratings), len(ratings)),
                feedback_count=len(ratings),
                rating_counts=counts,
            )
        )
    return out


def top_and_bottom(stats: list[SubjectStats], n: int = 3) -> tuple[list[SubjectStats], list[SubjectStats]]:
    ranked = sorted(stats, key=lambda s: s.average_rating, reverse=True)
    bottom = sorted(stats, key=lambda s: s.average_rating)
    return ranked[:n], bottom[:n]


def window_dates(days: int, today: date) -> list[date]:
    """The trailing ``days`` calendar days ending today, oldest first."""

    return [today - timedelta(days=i) for i in range(days - 1, -1, -1)]


def trend_points(rows: Iterable[Any], *, days: int, today: date) -> list[TrendPoint]:
    """Daily submission count and average rating over the trailing window.

    With no rows inside the window the result is empty; otherwise every day
    is present and quiet days carry ``average_rating=None``.
    """

    window = window_dates(days, today)
    in_window = set(window)
    grouped: dict[date, list[int]] = {}
    for row in rows:
        d = _as_utc_date(_get(row, "created_at"))
        if d in in_window:
            grouped.setdefault(d, []).append(int(_get(row, "rating")))

    if not grouped:
        return []

    points: list[TrendPoint] = []
    for d in window:
        ratings = grouped.get(d, [])
        points.append(
            TrendPoint(
                date=d.isoformat(),
                submission_count=len(ratings),
                average_rating=_average(sum(ratings), len(ratings)) if ratings else None,
            )
        )
    return points


def _window_start(days: int, now: datetime) -> datetime:
    today = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()
    start = datetime.combine(today - timedelta(days=days - 1), datetime.min.time())
    return start.replace(tzinfo=timezone.utc)


def subject_feedback_stats(
    db: Session,
    *,
    batch_id: uuid.UUID | None = None,
    semester_number: int | None = None,
    timeframe_days: int | None = None,
    now: datetime | None = None,
) -> list[SubjectStats]:
    rating_columns = [
        func.sum(case((Feedback.rating == r, 1), else_=0)).label(f"r{r}") for r in RATING_VALUES
    ]
    q = (
        select(
            Feedback.subject_id,
            Subject.name.label("subject_name"),
            func.avg(Feedback.rating).label("average_rating"),
            func.count(Feedback.id).label("feedback_count"),
            *rating_columns,
        )
        .select_from(Feedback)
        .join(Subject, Subject.id == Feedback.subject_id)
        .group_by(Feedback.subject_id, Subject.name)
        .order_by(Subject.name.asc())
    )
    if batch_id is not None:
        q = q.where(Feedback.batch_id == batch_id)
    if semester_number is not None:
        q = q.where(Feedback.semester_number == int(semester_number))
    if timeframe_days is not None:
        q = q.where(Feedback.created_at >= _window_start(timeframe_days, now or datetime.now(timezone.utc)))

    return [
        SubjectStats(
            subject_id=r.subject_id,
            subject_name=str(r.subject_name),
            average_rating=round(float(r.average_rating), 2),
            feedback_count=int(r.feedback_count),
            rating_counts={v: int(getattr(r, f"r{v}") or 0) for v in RATING_VALUES},
        )
        for r in db.execute(q).all()
    ]


def feedback_trends(
    db: Session,
    *,
    days: int,
    batch_id: uuid.UUID | None = None,
    semester_number: int | None = None,
    now: datetime | None = None,
) -> list[TrendPoint]:
    now = now or datetime.now(timezone.utc)
    day_col = func.date(Feedback.created_at)
    q = (
        select(
            day_col.label("day"),
            func.count(Feedback.id).label("submission_count"),
            func.avg(Feedback.rating).label("average_rating"),
        )
        .where(Feedback.created_at >= _window_start(days, now))
        .group_by(day_col)
    )
    if batch_id is not None:
        q = q.where(Feedback.batch_id == batch_id)
    if semester_number is not None:
        q = q.where(Feedback.semester_number == int(semester_number))

    # Postgres returns a date, SQLite an ISO string.
    by_day = {str(r.day)[:10]: r for r in db.execute(q).all()}
    if not by_day:
        return []

    today = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()
    points: list[TrendPoint] = []
    for d in window_dates(days, today):
        r = by_day.get(d.isoformat())
        if r is None:
            points.append(TrendPoint(date=d.isoformat(), submission_count=0, average_rating=None))
        else:
            points.append(
                TrendPoint(
                    date=d.isoformat(),
                    submission_count=int(r.submission_count),
                    average_rating=round(float(r.average_rating), 2),
                )
            )
    return points
