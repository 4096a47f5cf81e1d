from __future__ import annotations

import os
from pathlib import Path

import psycopg2


TABLES = ("batches", "subjects", "timetables", "feedback", "users")


def _load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip().strip('"').strip("'"))


def _normalize_psycopg_url(url: str) -> str:
    url = url.strip()
    for prefix in ("postgresql+psycopg2://", "postgresql+psycopg://"):
        if url.startswith(prefix):
            return "postgresql://" + url.removeprefix(prefix)
    return url


def main() -> int:
    backend_dir = Path(__file__).resolve().parents[1]
    _load_env_file(backend_dir / ".env")

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise SystemExit("DATABASE_URL not set (backend/.env)")

    select_list = ",\n".join(f"(select count(*) from {t}) as {t}" for t in TABLES)
    with psycopg2.connect(_normalize_psycopg_url(database_url)) as conn:
        with conn.cursor() as cur:
            cur.execute(f"select {select_list}")
            row = cur.fetchone()
            cur.execute("select count(*) from feedback where admin_response is null")
            unanswered = cur.fetchone()[0]

    counts = dict(zip(TABLES, row))
    counts["unanswered_feedback"] = unanswered
    print(counts)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
