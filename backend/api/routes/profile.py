from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user
from core.config import settings
from core.database import get_db
from models.batch import Batch
from models.user import User
from schemas.profile import ProfileOut, ProfileUpdate
from services.storage import StorageError, remove_avatar, save_avatar


router = APIRouter()

logger = logging.getLogger(__name__)


def profile_out(db: Session, user: User) -> ProfileOut:
    batch = db.get(Batch, user.batch_id) if user.batch_id is not None else None
    return ProfileOut(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        is_admin=bool(user.is_admin),
        is_active=bool(user.is_active),
        batch_id=user.batch_id,
        batch_name=batch.name if batch is not None else None,
        semester_number=user.semester_number,
        avatar_url=user.avatar_url,
        profile_complete=user.profile_complete,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.get("/", response_model=ProfileOut)
def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileOut:
    return profile_out(db, current_user)


@router.patch("/", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileOut:
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("batch_id") is not None and db.get(Batch, updates["batch_id"]) is None:
        raise HTTPException(status_code=404, detail="BATCH_NOT_FOUND")

    for k, v in updates.items():
        setattr(current_user, k, v.strip() if isinstance(v, str) else v)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Profile update failed user_id=%s", current_user.id)
        raise HTTPException(status_code=409, detail="CONFLICT")
    db.refresh(current_user)
    return profile_out(db, current_user)


@router.post("/avatar", response_model=ProfileOut)
def upload_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileOut:
    data = file.file.read(settings.max_upload_bytes + 1)
    try:
        url = save_avatar(
            upload_dir=settings.upload_dir,
            user_id=current_user.id,
            content_type=file.content_type,
            data=data,
            max_bytes=settings.max_upload_bytes,
        )
    except StorageError as exc:
        status = 413 if exc.code == "FILE_TOO_LARGE" else 400
        raise HTTPException(status_code=status, detail=exc.code)

    previous = current_user.avatar_url
    current_user.avatar_url = url
    db.commit()
    db.refresh(current_user)
    remove_avatar(upload_dir=settings.upload_dir, avatar_url=previous)
    return profile_out(db, current_user)
