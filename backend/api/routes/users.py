from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from api.deps import require_admin
from api.routes.profile import profile_out
from core.database import get_db
from models.user import User
from schemas.profile import ProfileOut


router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/", response_model=list[ProfileOut])
def list_users(
    is_admin: bool | None = Query(default=None),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[ProfileOut]:
    q = select(User).order_by(User.last_name.asc(), User.first_name.asc(), User.username.asc())
    if is_admin is not None:
        q = q.where(User.is_admin.is_(is_admin))
    return [profile_out(db, u) for u in db.execute(q).scalars().all()]


@router.post("/{user_id}/toggle-admin", response_model=ProfileOut)
def toggle_admin(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ProfileOut:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="USER_NOT_FOUND")
    if user.id == admin.id and user.is_admin:
        raise HTTPException(status_code=400, detail="CANNOT_REVOKE_SELF")

    user.is_admin = not bool(user.is_admin)
    db.commit()
    db.refresh(user)
    logger.info("Admin flag changed user_id=%s is_admin=%s by=%s", user.id, user.is_admin, admin.id)
    return profile_out(db, user)
