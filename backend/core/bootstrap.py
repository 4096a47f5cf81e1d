from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.config import settings
from core.database import ENGINE, SessionLocal
from core.security import hash_password
from models import Base, User


logger = logging.getLogger(__name__)


def ensure_schema() -> None:
    # Idempotent: only missing tables are created.
    Base.metadata.create_all(bind=ENGINE)


def seed_admin(db: Session, *, username: str | None, password: str | None) -> User | None:
    """Create (or promote) the configured admin. Returns the user when seeded/promoted."""

    if not username or not password:
        return None

    existing = db.execute(
        select(User).where(func.lower(User.username) == func.lower(username))
    ).scalar_one_or_none()
    if existing is not None:
        if existing.is_admin:
            return None
        existing.is_admin = True
        db.commit()
        logger.warning("Promoted existing user to admin from env (username=%r).", username)
        return existing

    user = User(
        username=username,
        password_hash=hash_password(password),
        is_admin=True,
        is_active=True,
    )
    db.add(user)
    db.commit()
    logger.warning(
        "Seeded initial admin user from env (username=%r). Change the password after first login.",
        username,
    )
    return user


def bootstrap_database() -> None:
    """Best-effort startup bootstrap: tables + optional admin seed. Safe on every start."""

    ensure_schema()
    with SessionLocal() as db:
        seed_admin(db, username=settings.seed_admin_username, password=settings.seed_admin_password)
