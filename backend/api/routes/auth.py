from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.deps import get_current_user
from core.config import settings
from core.database import get_db
from core.security import create_access_token, hash_password, verify_password
from models.user import User
from schemas.auth import LoginRequest, LoginResponse, MeResponse, SignupRequest, SignupResponse


router = APIRouter()

logger = logging.getLogger(__name__)


# In-memory rate limiting for login/signup.
# NOTE: per-worker in multi-worker deployments.
_LOGIN_WINDOW_SECONDS = 60
_LOGIN_MAX_ATTEMPTS_PER_KEY = 12
_login_attempts: dict[str, list[float]] = {}


def _rate_limit_key(request: Request, username: str) -> str:
    ip = request.client.host if request.client else "unknown"
    return f"{ip}:{username.lower().strip()}"


def _enforce_login_rate_limit(request: Request, username: str) -> None:
    key = _rate_limit_key(request, username)
    now = time.time()
    history = [t for t in _login_attempts.get(key, []) if now - t < _LOGIN_WINDOW_SECONDS]
    history.append(now)
    _login_attempts[key] = history
    if len(history) > _LOGIN_MAX_ATTEMPTS_PER_KEY:
        raise HTTPException(status_code=429, detail="RATE_LIMITED")


def home_for(user: User) -> str:
    if user.is_admin:
        return "/admin"
    if not user.profile_complete:
        return "/profile"
    return "/student"


def _set_auth_cookie(response: Response, token: str) -> None:
    samesite = settings.cookie_samesite
    if samesite not in {"lax", "strict", "none"}:
        raise HTTPException(status_code=500, detail="INVALID_COOKIE_SAMESITE")
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite=samesite,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    username = str(payload.username or "").strip()
    _enforce_login_rate_limit(request, username)

    ip = request.client.host if request.client else "unknown"

    # Be forgiving about casing/whitespace on input.
    user = db.execute(
        select(User).where(func.lower(User.username) == func.lower(username))
    ).scalar_one_or_none()
    if user is None:
        logger.warning("Login failed (unknown user) ip=%s username=%r", ip, username)
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")
    if not user.is_active:
        logger.warning("Login failed (disabled user) ip=%s username=%r", ip, username)
        raise HTTPException(status_code=403, detail="USER_DISABLED")

    password = str(payload.password or "")
    password_ok = verify_password(password, user.password_hash)
    if not password_ok and password != password.strip():
        # Copy/paste often adds a trailing newline/space.
        password_ok = verify_password(password.strip(), user.password_hash)
        if password_ok:
            logger.warning("Login password had surrounding whitespace; accepted after trimming ip=%s username=%r", ip, username)

    if not password_ok:
        logger.warning("Login failed (bad password) ip=%s username=%r", ip, username)
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")

    token = create_access_token(user_id=str(user.id), username=user.username, is_admin=bool(user.is_admin))
    _set_auth_cookie(response, token)
    return LoginResponse(ok=True, access_token=token)


@router.post("/signup", response_model=SignupResponse)
def signup(
    payload: SignupRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SignupResponse:
    if not settings.allow_signup:
        raise HTTPException(status_code=403, detail="SIGNUP_DISABLED")

    username = str(payload.username or "").strip()
    if not username:
        raise HTTPException(status_code=422, detail="INVALID_USERNAME")
    _enforce_login_rate_limit(request, username)

    ip = request.client.host if request.client else "unknown"

    # Case-insensitive uniqueness; multiple matching rows would break login.
    existing = db.execute(
        select(User.id).where(func.lower(User.username) == func.lower(username))
    ).scalar_one_or_none()
    if existing is not None:
        logger.warning("Signup rejected (username taken) ip=%s username=%r", ip, username)
        raise HTTPException(status_code=409, detail="USERNAME_TAKEN")

    # Signups are always students; admins are promoted by another admin.
    user = User(
        username=username,
        password_hash=hash_password(str(payload.password)),
        first_name=(payload.first_name or "").strip() or None,
        last_name=(payload.last_name or "").strip() or None,
        is_admin=False,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Signup rejected (integrity error) ip=%s username=%r", ip, username)
        raise HTTPException(status_code=409, detail="USERNAME_TAKEN")
    db.refresh(user)

    # Auto-login after signup (same cookie as /login).
    token = create_access_token(user_id=str(user.id), username=user.username, is_admin=False)
    _set_auth_cookie(response, token)

    logger.info("Signup success ip=%s username=%r", ip, user.username)
    return SignupResponse(ok=True)


@router.post("/logout")
def logout(response: Response) -> dict[str, Any]:
    response.delete_cookie(key="access_token", path="/")
    return {"ok": True}


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        username=current_user.username,
        is_admin=bool(current_user.is_admin),
        is_active=bool(current_user.is_active),
        profile_complete=current_user.profile_complete,
        home=home_for(current_user),
        created_at=current_user.created_at,
    )
