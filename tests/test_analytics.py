from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from models.feedback import Feedback
from services.analytics import (
    subject_feedback_stats,
    summarize_by_subject,
    top_and_bottom,
    trend_points,
    window_dates,
)


A = uuid.uuid4()
B = uuid.uuid4()
C = uuid.uuid4()


def test_summarize_by_subject():
    rows = [
        {"subject_id": A, "subject_name": "Algebra", "rating": 4},
        {"subject_id": B, "subject_name": "Biology", "rating": 2},
        {"subject_id": A, "subject_name": "Algebra", "rating": 5},
    ]

    stats = summarize_by_subject(rows)

    assert [s.subject_name for s in stats] == ["Algebra", "Biology"]
    algebra = stats[0]
    assert algebra.average_rating == 4.5
    assert algebra.feedback_count == 2
    assert algebra.rating_counts == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}


def test_summarize_rounds_to_two_places():
    rows = [{"subject_id": A, "subject_name": "Algebra", "rating": r} for r in (5, 4, 4)]
    assert summarize_by_subject(rows)[0].average_rating == 4.33


def test_empty_input_gives_empty_results():
    assert summarize_by_subject([]) == []
    assert trend_points([], days=7, today=date(2026, 10, 18)) == []
    assert top_and_bottom([]) == ([], [])


def test_top_and_bottom():
    rows = [
        {"subject_id": A, "subject_name": "Algebra", "rating": 5},
        {"subject_id": B, "subject_name": "Biology", "rating": 1},
        {"subject_id": C, "subject_name": "Chemistry", "rating": 3},
    ]

    top, bottom = top_and_bottom(summarize_by_subject(rows), n=2)

    assert [s.subject_name for s in top] == ["Algebra", "Chemistry"]
    assert [s.subject_name for s in bottom] == ["Biology", "Chemistry"]


def test_window_dates_oldest_first():
    assert window_dates(3, date(2026, 10, 18)) == [date(2026, 10, 16), date(2026, 10, 17), date(2026, 10, 18)]


def test_trend_points_fill_quiet_days():
    rows = [
        {"created_at": datetime(2026, 10, 18, 9, tzinfo=timezone.utc), "rating": 4},
        {"created_at": datetime(2026, 10, 18, 11, tzinfo=timezone.utc), "rating": 5},
        {"created_at": "2026-10-12T08:00:00", "rating": 2},
        {"created_at": datetime(2026, 9, 1, tzinfo=timezone.utc), "rating": 1},
    ]

    points = trend_points(rows, days=7, today=date(2026, 10, 18))

    assert len(points) == 7
    assert points[0].date == "2026-10-12"
    assert (points[0].submission_count, points[0].average_rating) == (1, 2.0)
    assert (points[1].submission_count, points[1].average_rating) == (0, None)
    assert (points[-1].submission_count, points[-1].average_rating) == (2, 4.5)


def _feedback(db, student, subject, rating, created_at=None):
    fb = Feedback(
        student_id=student.id,
        subject_id=subject.id,
        batch_id=subject.batch_id,
        semester_number=subject.semester_number,
        rating=rating,
    )
    if created_at is not None:
        fb.created_at = created_at
    db.add(fb)
    db.commit()
    return fb


def test_subject_feedback_stats_query(db, student, math, physics):
    _feedback(db, student, math, 4)
    _feedback(db, student, math, 5)
    _feedback(db, student, physics, 2)

    stats = subject_feedback_stats(db)

    assert [(s.subject_name, s.average_rating, s.feedback_count) for s in stats] == [
        ("Mathematics", 4.5, 2),
        ("Physics", 2.0, 1),
    ]
    assert stats[0].rating_counts[5] == 1


def test_subject_feedback_stats_timeframe(db, student, math, physics):
    now = datetime.now(timezone.utc)
    _feedback(db, student, math, 4, created_at=now - timedelta(days=1))
    _feedback(db, student, physics, 2, created_at=now - timedelta(days=40))

    stats = subject_feedback_stats(db, timeframe_days=30, now=now)

    assert [s.subject_name for s in stats] == ["Mathematics"]


def test_subjects_endpoint_validates_timeframe(client, admin_headers):
    res = client.get("/api/analytics/subjects", params={"timeframe_days": 14}, headers=admin_headers)

    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "INVALID_TIMEFRAME"


@pytest.mark.parametrize("days", [7, 30, 90])
def test_trends_endpoint(client, admin_headers, db, student, math, days):
    now = datetime.now(timezone.utc)
    _feedback(db, student, math, 3, created_at=now - timedelta(hours=1))
    _feedback(db, student, math, 5, created_at=now - timedelta(hours=2))

    res = client.get("/api/analytics/trends", params={"days": days}, headers=admin_headers)

    assert res.status_code == 200
    points = res.json()
    assert len(points) == days
    total = sum(p["submission_count"] for p in points)
    assert total == 2


def test_trends_endpoint_empty(client, admin_headers):
    res = client.get("/api/analytics/trends", headers=admin_headers)
    assert res.json() == []


def test_top_bottom_endpoint(client, admin_headers, db, student, math, physics):
    _feedback(db, student, math, 5)
    _feedback(db, student, physics, 1)

    res = client.get("/api/analytics/top-bottom", params={"limit": 1}, headers=admin_headers)

    body = res.json()
    assert [s["subject_name"] for s in body["top"]] == ["Mathematics"]
    assert [s["subject_name"] for s in body["bottom"]] == ["Physics"]


def test_analytics_is_admin_only(client, student_headers):
    assert client.get("/api/analytics/subjects", headers=student_headers).status_code == 403


def test_trend_points_ignore_rows_outside_window():
    rows = [{"created_at": datetime(2020, 1, 1, tzinfo=timezone.utc), "rating": 4}]
    assert trend_points(rows, days=7, today=date(2026, 10, 12)) == []
