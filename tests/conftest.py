from __future__ import annotations

import os
import tempfile
from datetime import datetime, time
from pathlib import Path

# Settings are read at import time; configure the environment first.
_TMP = Path(tempfile.mkdtemp(prefix="feedback-portal-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ALLOW_SIGNUP", "true")

import pytest
from fastapi.testclient import TestClient

from api.routes import auth as auth_routes
from api.routes.student import get_now
from core.database import ENGINE, SessionLocal
from core.security import create_access_token, hash_password
from main import create_app
from models import Base, Batch, Subject, TimetableEntry, User


PASSWORD = "correct-horse-1"

# Monday 2026-10-12, the clock most API tests run against.
MONDAY = datetime(2026, 10, 12, 9, 30)


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(PASSWORD)


@pytest.fixture(scope="session")
def app():
    return create_app(run_bootstrap=False)


@pytest.fixture(autouse=True)
def _fresh_schema(app):
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    auth_routes._login_attempts.clear()
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock(app):
    """Pin the feedback gate's "now"; call ``clock.set(datetime)`` to move it."""

    class _Clock:
        now = MONDAY

        def set(self, value: datetime) -> None:
            self.now = value

    c = _Clock()
    app.dependency_overrides[get_now] = lambda: c.now
    return c


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user_id=str(user.id), username=user.username, is_admin=bool(user.is_admin))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def batch(db) -> Batch:
    b = Batch(name="2023-2027")
    db.add(b)
    db.commit()
    return b


@pytest.fixture
def admin(db, password_hash) -> User:
    user = User(username="admin", password_hash=password_hash, is_admin=True, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def student(db, batch, password_hash) -> User:
    user = User(
        username="asha",
        password_hash=password_hash,
        first_name="Asha",
        last_name="Rao",
        batch_id=batch.id,
        semester_number=1,
        is_admin=False,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def student_headers(student) -> dict[str, str]:
    return auth_headers(student)


@pytest.fixture
def math(db, batch) -> Subject:
    subject = Subject(name="Mathematics", period=1, batch_id=batch.id, semester_number=1)
    db.add(subject)
    db.commit()
    return subject


@pytest.fixture
def physics(db, batch) -> Subject:
    subject = Subject(name="Physics", period=2, batch_id=batch.id, semester_number=1)
    db.add(subject)
    db.commit()
    return subject


@pytest.fixture
def monday_schedule(db, batch, math, physics) -> list[TimetableEntry]:
    """Mathematics 09:00-10:00 and Physics 10:30-11:30 on Mondays."""

    entries = [
        TimetableEntry(
            day_of_week=1,
            subject_id=math.id,
            batch_id=batch.id,
            semester_number=1,
            start_time=time(9, 0),
            end_time=time(10, 0),
        ),
        TimetableEntry(
            day_of_week=1,
            subject_id=physics.id,
            batch_id=batch.id,
            semester_number=1,
            start_time=time(10, 30),
            end_time=time(11, 30),
        ),
    ]
    db.add_all(entries)
    db.commit()
    return entries
