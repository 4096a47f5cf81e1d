from __future__ import annotations

import time
from typing import Iterable

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from core.config import settings
from core.realtime import change_feed


class DatabaseUnavailableError(RuntimeError):
    """Raised when the database is temporarily unreachable (transient connectivity failure)."""


_RETRY_DELAYS_SECONDS: list[float] = [0.2, 0.5, 1.0]

# Tables whose commits are announced on the realtime change feed.
WATCHED_TABLES = frozenset({"batches", "feedback", "subjects", "timetables", "users"})

_PENDING_CHANGES_KEY = "pending_changes"


def _iter_exception_messages(exc: BaseException) -> Iterable[str]:
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        msg = str(cur)
        if msg:
            yield msg
        cur = getattr(cur, "__cause__", None) or getattr(cur, "__context__", None)


def is_transient_db_connectivity_error(exc: BaseException) -> bool:
    """Heuristically detect transient DB connectivity failures (DNS/timeouts/refused).

    Constraint/validation/SQL errors are never treated as transient.
    """

    joined = "\n".join(m.lower() for m in _iter_exception_messages(exc))

    markers = (
        # DNS resolution failures
        "getaddrinfo failed",
        "could not translate host name",
        "name or service not known",
        # Connection refused / reset / closed
        "connection refused",
        "actively refused",
        "connection reset",
        "server closed the connection unexpectedly",
        # Timeouts
        "timeout",
        "timed out",
    )
    return any(m in joined for m in markers)


def _normalize_url(url: str) -> str:
    # Normalize common Postgres URLs to SQLAlchemy's psycopg2 dialect.
    if url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + url.removeprefix("postgresql://")
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url.removeprefix("postgres://")
    if url.startswith("postgresql+psycopg://"):
        return "postgresql+psycopg2://" + url.removeprefix("postgresql+psycopg://")
    return url


def get_engine() -> Engine:
    url = _normalize_url(settings.database_url.strip())
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        # Local/test runs: the request threadpool shares connections.
        return create_engine(url, connect_args={"check_same_thread": False})

    connect_args: dict[str, object] = {"connect_timeout": 3}

    # Hosted Postgres (Supabase) requires SSL.
    host = (parsed.host or "").lower()
    if host.endswith("supabase.com") and "sslmode" not in (parsed.query or {}):
        connect_args["sslmode"] = "require"

    # pool_pre_ping helps with stale pooled connections.
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


ENGINE = get_engine()
SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)


@event.listens_for(Session, "before_flush")
def _collect_changes(session: Session, flush_context, instances) -> None:
    pending: set[tuple[str, str]] = session.info.setdefault(_PENDING_CHANGES_KEY, set())
    for kind, objs in (("INSERT", session.new), ("UPDATE", session.dirty), ("DELETE", session.deleted)):
        for obj in objs:
            table = getattr(obj, "__tablename__", None)
            if table in WATCHED_TABLES:
                pending.add((table, kind))


@event.listens_for(Session, "after_commit")
def _publish_changes(session: Session) -> None:
    pending = session.info.pop(_PENDING_CHANGES_KEY, set())
    for table, kind in sorted(pending):
        change_feed.publish(table, {"table": table, "event": kind})


@event.listens_for(Session, "after_rollback")
def _drop_changes(session: Session) -> None:
    session.info.pop(_PENDING_CHANGES_KEY, None)


def note_change(session: Session, table: str, kind: str) -> None:
    """Record a change made with a bulk statement (bypasses the flush hooks)."""

    session.info.setdefault(_PENDING_CHANGES_KEY, set()).add((table, kind))


def get_db():
    last_exc: BaseException | None = None

    # Retry session acquisition by doing an explicit lightweight ping (SELECT 1).
    for attempt in range(len(_RETRY_DELAYS_SECONDS) + 1):
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        except OperationalError as exc:
            last_exc = exc
            db.close()
            if not is_transient_db_connectivity_error(exc) or attempt >= len(_RETRY_DELAYS_SECONDS):
                break
            time.sleep(_RETRY_DELAYS_SECONDS[attempt])
            continue

        # Do NOT wrap `yield db` in the same try/except as the ping: endpoint errors
        # (409/422) must propagate instead of becoming DatabaseUnavailableError (503).
        try:
            yield db
        finally:
            db.close()
        return

    raise DatabaseUnavailableError("Database temporarily unavailable") from last_exc
