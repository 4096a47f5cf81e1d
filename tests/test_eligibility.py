from __future__ import annotations

import uuid
from datetime import datetime, time

import pytest

from conftest import auth_headers
from models.user import User
from services.eligibility import (
    EMPTY_GATE,
    RECHECK_INTERVAL_SECONDS,
    ScheduledSubject,
    evaluate_gate,
    gate_for_student,
    is_window_open,
    parse_hhmm,
)


def _subject(name: str, start: time, end: time) -> ScheduledSubject:
    return ScheduledSubject(
        subject_id=uuid.uuid4(),
        name=name,
        period=None,
        start_time=start,
        end_time=end,
        batch_id=uuid.uuid4(),
        semester_number=1,
    )


MATH = _subject("Mathematics", time(9, 0), time(10, 0))
PHYSICS = _subject("Physics", time(10, 30), time(11, 30))


@pytest.mark.parametrize(
    ("hh", "mm", "expected"),
    [
        (8, 59, False),
        (9, 0, True),
        (9, 30, True),
        (10, 10, True),
        (10, 15, True),
        (10, 16, False),
    ],
)
def test_window_covers_class_plus_grace(hh, mm, expected):
    now = datetime(2026, 10, 12, hh, mm)
    assert is_window_open(MATH, now, grace_minutes=15) is expected


def test_grace_is_configurable():
    assert is_window_open(MATH, datetime(2026, 10, 12, 10, 20), grace_minutes=30)
    assert not is_window_open(MATH, datetime(2026, 10, 12, 10, 1), grace_minutes=0)


def test_evaluate_gate_picks_running_subject():
    gate = evaluate_gate([PHYSICS, MATH], [], datetime(2026, 10, 12, 10, 10))

    assert [s.name for s in gate.subjects] == ["Mathematics", "Physics"]
    assert gate.active is not None
    assert gate.active.subject_id == MATH.subject_id
    assert gate.can_submit


def test_evaluate_gate_between_classes_has_no_active_subject():
    gate = evaluate_gate([MATH, PHYSICS], [], datetime(2026, 10, 12, 10, 20))

    assert gate.active is None
    assert not gate.can_submit
    assert not gate.has_submitted_feedback


def test_evaluate_gate_marks_submitted_subjects():
    gate = evaluate_gate([MATH, PHYSICS], [MATH.subject_id], datetime(2026, 10, 12, 9, 45))

    assert gate.has_submitted_feedback
    assert not gate.can_submit
    assert [s.has_submitted_feedback for s in gate.subjects] == [True, False]


def test_overlapping_entries_resolve_to_earliest_start():
    early = _subject("Early", time(9, 0), time(11, 0))
    late = _subject("Late", time(10, 0), time(12, 0))

    gate = evaluate_gate([late, early], [], datetime(2026, 10, 12, 10, 30))

    assert gate.active.name == "Early"


def test_parse_hhmm_accepts_strings_and_times():
    assert parse_hhmm("09:05") == time(9, 5)
    assert parse_hhmm("14:30:00") == time(14, 30)
    assert parse_hhmm(time(8, 15, 42)) == time(8, 15)
    with pytest.raises(ValueError):
        parse_hhmm("0900")


def test_gate_for_incomplete_profile_is_empty(db):
    gate = gate_for_student(
        db,
        student_id=uuid.uuid4(),
        batch_id=None,
        semester_number=None,
        now=datetime(2026, 10, 12, 9, 30),
    )
    assert gate is EMPTY_GATE


def test_gate_for_student_uses_weekday_of_now(db, student, monday_schedule, math):
    monday = gate_for_student(
        db,
        student_id=student.id,
        batch_id=student.batch_id,
        semester_number=student.semester_number,
        now=datetime(2026, 10, 12, 9, 30),
    )
    tuesday = gate_for_student(
        db,
        student_id=student.id,
        batch_id=student.batch_id,
        semester_number=student.semester_number,
        now=datetime(2026, 10, 13, 9, 30),
    )

    assert monday.active.subject_id == math.id
    assert tuesday.subjects == []
    assert tuesday.active is None


def test_daily_subjects_endpoint(client, clock, student_headers, monday_schedule, math):
    clock.set(datetime(2026, 10, 12, 10, 10))

    res = client.get("/api/student/daily-subjects", headers=student_headers)

    assert res.status_code == 200
    body = res.json()
    assert [s["name"] for s in body["subjects"]] == ["Mathematics", "Physics"]
    assert body["subjects"][0]["start_time"] == "09:00"
    assert body["active_subject"]["subject_id"] == str(math.id)
    assert body["can_submit"] is True
    assert body["has_submitted_feedback"] is False
    assert body["recheck_after_seconds"] == RECHECK_INTERVAL_SECONDS


def test_daily_subjects_for_incomplete_profile(client, clock, db, password_hash):
    newcomer = User(username="newbie", password_hash=password_hash, is_admin=False, is_active=True)
    db.add(newcomer)
    db.commit()

    res = client.get("/api/student/daily-subjects", headers=auth_headers(newcomer))

    assert res.status_code == 200
    body = res.json()
    assert body["subjects"] == []
    assert body["active_subject"] is None
    assert body["can_submit"] is False


def test_daily_subjects_is_student_only(client, clock, admin_headers):
    res = client.get("/api/student/daily-subjects", headers=admin_headers)
    assert res.status_code == 403
    assert res.json()["detail"] == "STUDENTS_ONLY"
