from __future__ import annotations

"""Create all tables and (optionally) seed an initial admin user.

Safe to run multiple times. No default admin credentials ship with this script;
provide them via flags or environment variables.
"""

import argparse
import os
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import inspect

from core.bootstrap import ensure_schema, seed_admin
from core.database import ENGINE, SessionLocal
from models import Base


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    parser.add_argument("--username", default=None, help="Admin username (or set SEED_ADMIN_USERNAME env var)")
    parser.add_argument("--password", default=None, help="Admin password (or set SEED_ADMIN_PASSWORD env var)")
    args = parser.parse_args()

    username = (args.username or os.environ.get("SEED_ADMIN_USERNAME") or "").strip() or None
    password = args.password or os.environ.get("SEED_ADMIN_PASSWORD") or None

    existing = set(inspect(ENGINE).get_table_names())
    missing = [t for t in Base.metadata.sorted_tables if t.name not in existing]

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        print("Would create tables:", [t.name for t in missing] or "none")
        if username and password:
            print(f"Would seed admin username={username!r}")
        return

    ensure_schema()
    with SessionLocal() as db:
        seeded = seed_admin(db, username=username, password=password)

    print({"created_tables": [t.name for t in missing], "admin_seeded": seeded is not None})


if __name__ == "__main__":
    main()
