from __future__ import annotations

import logging
import uuid
from pathlib import Path


logger = logging.getLogger(__name__)


AVATAR_CONTENT_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

AVATAR_URL_PREFIX = "/uploads/avatars"


class StorageError(ValueError):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def save_avatar(
    *,
    upload_dir: Path,
    user_id: uuid.UUID,
    content_type: str | None,
    data: bytes,
    max_bytes: int,
) -> str:
    """Store an avatar image and return its public URL path."""

    ext = AVATAR_CONTENT_TYPES.get((content_type or "").lower())
    if ext is None:
        raise StorageError("UNSUPPORTED_IMAGE_TYPE")
    if not data:
        raise StorageError("EMPTY_FILE")
    if len(data) > max_bytes:
        raise StorageError("FILE_TOO_LARGE")

    avatars_dir = Path(upload_dir) / "avatars"
    avatars_dir.mkdir(parents=True, exist_ok=True)

    # New name per upload so cached URLs never show a stale image.
    filename = f"{user_id}-{uuid.uuid4().hex[:8]}{ext}"
    (avatars_dir / filename).write_bytes(data)
    logger.info("Stored avatar user_id=%s file=%s bytes=%d", user_id, filename, len(data))
    return f"{AVATAR_URL_PREFIX}/{filename}"


def remove_avatar(*, upload_dir: Path, avatar_url: str | None) -> None:
    if not avatar_url or not avatar_url.startswith(AVATAR_URL_PREFIX + "/"):
        return
    path = Path(upload_dir) / "avatars" / avatar_url.rsplit("/", 1)[-1]
    try:
        path.unlink()
    except FileNotFoundError:
        pass
