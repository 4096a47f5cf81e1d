from __future__ import annotations

from datetime import time

import pytest

from services.timetable_conflicts import find_conflict, intervals_overlap


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        (("09:00", "10:00"), ("09:30", "10:30"), True),
        (("09:00", "10:00"), ("09:15", "09:45"), True),
        (("09:00", "10:00"), ("08:00", "11:00"), True),
        (("09:00", "10:00"), ("10:00", "11:00"), False),
        (("09:00", "10:00"), ("08:00", "09:00"), False),
        (("09:00", "10:00"), ("13:00", "14:00"), False),
    ],
)
def test_intervals_overlap(a, b, expected):
    def t(s: str) -> time:
        return time.fromisoformat(s)

    assert intervals_overlap(t(a[0]), t(a[1]), t(b[0]), t(b[1])) is expected
    assert intervals_overlap(t(b[0]), t(b[1]), t(a[0]), t(a[1])) is expected


def test_find_conflict_scopes_by_day_and_semester(db, batch, monday_schedule):
    kwargs = dict(batch_id=batch.id, start_time=time(9, 30), end_time=time(10, 15))

    assert find_conflict(db, semester_number=1, day_of_week=1, **kwargs).id == monday_schedule[0].id
    assert find_conflict(db, semester_number=1, day_of_week=2, **kwargs) is None
    assert find_conflict(db, semester_number=2, day_of_week=1, **kwargs) is None
    assert (
        find_conflict(db, semester_number=1, day_of_week=1, exclude_entry_id=monday_schedule[0].id, **kwargs)
        is None
    )


def _entry_payload(batch, subject, **overrides):
    payload = {
        "day_of_week": 1,
        "subject_id": str(subject.id),
        "batch_id": str(batch.id),
        "semester_number": 1,
        "start_time": "12:00",
        "end_time": "13:00",
    }
    payload.update(overrides)
    return payload


def test_create_entry(client, admin_headers, batch, math):
    res = client.post("/api/timetable/", json=_entry_payload(batch, math, start_time="9:5"), headers=admin_headers)

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["start_time"] == "09:05"
    assert body["end_time"] == "13:00"
    assert body["subject_name"] == "Mathematics"


def test_create_overlapping_entry_conflicts(client, admin_headers, batch, physics, monday_schedule):
    res = client.post(
        "/api/timetable/",
        json=_entry_payload(batch, physics, start_time="09:30", end_time="10:15"),
        headers=admin_headers,
    )

    assert res.status_code == 409
    detail = res.json()["detail"]
    assert detail["code"] == "TIMETABLE_CONFLICT"
    assert detail["conflicting_entry_id"] == str(monday_schedule[0].id)


def test_back_to_back_entries_do_not_conflict(client, admin_headers, batch, physics, monday_schedule):
    res = client.post(
        "/api/timetable/",
        json=_entry_payload(batch, physics, start_time="10:00", end_time="10:30"),
        headers=admin_headers,
    )
    assert res.status_code == 200


def test_start_must_precede_end(client, admin_headers, batch, math):
    res = client.post(
        "/api/timetable/",
        json=_entry_payload(batch, math, start_time="11:00", end_time="11:00"),
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "START_TIME_NOT_BEFORE_END_TIME"


def test_invalid_time_string_is_422(client, admin_headers, batch, math):
    res = client.post("/api/timetable/", json=_entry_payload(batch, math, end_time="25:00"), headers=admin_headers)
    assert res.status_code == 422


def test_update_does_not_conflict_with_itself(client, admin_headers, batch, math, monday_schedule):
    entry = monday_schedule[0]

    res = client.put(
        f"/api/timetable/{entry.id}",
        json=_entry_payload(batch, math, start_time="08:45", end_time="09:50"),
        headers=admin_headers,
    )

    assert res.status_code == 200, res.text
    assert res.json()["start_time"] == "08:45"


def test_update_into_another_slot_conflicts(client, admin_headers, batch, math, monday_schedule):
    first, second = monday_schedule

    res = client.put(
        f"/api/timetable/{first.id}",
        json=_entry_payload(batch, math, start_time="11:00", end_time="12:00"),
        headers=admin_headers,
    )

    assert res.status_code == 409
    assert res.json()["detail"]["conflicting_entry_id"] == str(second.id)


def test_list_and_delete_entries(client, admin_headers, batch, monday_schedule):
    listed = client.get("/api/timetable/", params={"day_of_week": 1}, headers=admin_headers).json()
    assert [e["start_time"] for e in listed] == ["09:00", "10:30"]

    entry_id = listed[0]["id"]
    assert client.delete(f"/api/timetable/{entry_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/timetable/{entry_id}", headers=admin_headers).status_code == 404
    assert len(client.get("/api/timetable/", headers=admin_headers).json()) == 1


def test_student_weekly_timetable(client, student_headers, monday_schedule):
    res = client.get("/api/student/timetable", headers=student_headers)

    assert res.status_code == 200
    assert [(e["day_of_week"], e["subject_name"]) for e in res.json()] == [(1, "Mathematics"), (1, "Physics")]


def test_timetable_admin_routes_reject_students(client, student_headers):
    assert client.get("/api/timetable/", headers=student_headers).status_code == 403
