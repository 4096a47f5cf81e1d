from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[0]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.database import SessionLocal
from models.user import User


def main() -> None:
    parser = argparse.ArgumentParser(description="Grant or revoke the admin flag by username.")
    parser.add_argument("username", help="Username to update")
    parser.add_argument("--revoke", action="store_true", help="Revoke instead of grant")
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    args = parser.parse_args()

    username = args.username.strip()
    if not username:
        raise SystemExit("Username is required")
    is_admin = not args.revoke

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        print(f"Would set is_admin={is_admin} for username={username!r}")
        return

    with SessionLocal() as db:
        user = db.execute(
            select(User).where(func.lower(User.username) == func.lower(username))
        ).scalar_one_or_none()
        if user is None:
            raise SystemExit(f"No such user: {username!r}")
        user.is_admin = is_admin
        db.commit()
        print({"id": str(user.id), "username": user.username, "is_admin": user.is_admin, "is_active": user.is_active})


if __name__ == "__main__":
    main()
