from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8")

    database_url: str

    # Auth
    jwt_secret_key: str = Field(
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret", "JWT_SECRET_KEY", "JWT_SECRET")
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("jwt_algorithm", "JWT_ALGORITHM"))
    access_token_expire_minutes: int = Field(
        default=480,
        validation_alias=AliasChoices("access_token_expire_minutes", "ACCESS_TOKEN_EXPIRE_MINUTES"),
    )

    cookie_samesite: str = Field(
        default="lax",
        validation_alias=AliasChoices("cookie_samesite", "COOKIE_SAMESITE"),
    )

    allow_signup: bool = Field(
        default=True,
        validation_alias=AliasChoices("allow_signup", "ALLOW_SIGNUP"),
    )

    # Seed an initial admin on startup. Only used if BOTH username + password are provided.
    seed_admin_username: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "seed_admin_username",
            "SEED_ADMIN_USERNAME",
            "ADMIN_SEED_USERNAME",
        ),
    )
    seed_admin_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "seed_admin_password",
            "SEED_ADMIN_PASSWORD",
            "ADMIN_SEED_PASSWORD",
        ),
    )

    # Feedback window: class start through end + grace.
    feedback_grace_minutes: int = Field(
        default=15,
        ge=0,
        validation_alias=AliasChoices("feedback_grace_minutes", "FEEDBACK_GRACE_MINUTES"),
    )

    # IANA zone for "now" in the feedback gate; unset means the server's local time.
    school_timezone: str | None = Field(
        default=None,
        validation_alias=AliasChoices("school_timezone", "SCHOOL_TIMEZONE", "TZ_NAME"),
    )

    # Avatar storage
    upload_dir: Path = Field(
        default=BACKEND_DIR / "uploads",
        validation_alias=AliasChoices("upload_dir", "UPLOAD_DIR"),
    )
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        validation_alias=AliasChoices("max_upload_bytes", "MAX_UPLOAD_BYTES"),
    )

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    log_dir: Path = Field(default=BACKEND_DIR / "logs", validation_alias=AliasChoices("log_dir", "LOG_DIR"))
    # Overrides the environment default (DEBUG in dev, INFO in production).
    log_level: str | None = Field(default=None, validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    frontend_origin: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("cookie_samesite")
    @classmethod
    def _normalize_cookie_samesite(cls, v: str) -> str:
        return (v or "lax").strip().lower()

    @field_validator("school_timezone")
    @classmethod
    def _validate_school_timezone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown IANA timezone: {v!r}") from exc
        return v

    @field_validator("seed_admin_username")
    @classmethod
    def _normalize_seed_admin_username(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("seed_admin_password")
    @classmethod
    def _normalize_seed_admin_password(cls, v: str | None) -> str | None:
        if v is None:
            return None
        # Passwords can contain spaces; do not strip.
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower().strip() == "production"


settings = Settings()
