from __future__ import annotations

from conftest import PASSWORD
from core.bootstrap import seed_admin
from core.database import _normalize_url, is_transient_db_connectivity_error
from core.security import verify_password
from models.user import User


def test_seed_admin_creates_user(db):
    user = seed_admin(db, username="root", password=PASSWORD)

    assert user is not None
    assert user.is_admin
    assert verify_password(PASSWORD, user.password_hash)


def test_seed_admin_promotes_existing_user(db, student):
    promoted = seed_admin(db, username="ASHA", password="ignored-password")

    assert promoted.id == student.id
    assert promoted.is_admin
    assert db.query(User).count() == 1


def test_seed_admin_without_credentials_is_noop(db):
    assert seed_admin(db, username="root", password=None) is None
    assert seed_admin(db, username=None, password="x") is None
    assert db.query(User).count() == 0


def test_seed_admin_is_idempotent(db, admin):
    assert seed_admin(db, username="admin", password=PASSWORD) is None


def test_normalize_url():
    assert _normalize_url("postgres://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert _normalize_url("postgresql://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert _normalize_url("sqlite:///x.db") == "sqlite:///x.db"


def test_transient_error_detection():
    assert is_transient_db_connectivity_error(RuntimeError("could not translate host name \"db\""))
    assert is_transient_db_connectivity_error(RuntimeError("connection timed out"))
    assert not is_transient_db_connectivity_error(RuntimeError("duplicate key value violates unique constraint"))


def test_verify_password_handles_malformed_hash():
    assert verify_password(PASSWORD, "not-a-bcrypt-hash") is False
