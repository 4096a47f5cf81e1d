from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
LOG_FILE_NAME = "app.log"


def resolve_level(environment: str, override: str | None = None) -> int:
    if override:
        level = logging.getLevelName(override.strip().upper())
        if isinstance(level, int):
            return level
    env = (environment or "development").lower().strip()
    return logging.INFO if env == "production" else logging.DEBUG


def build_handlers(*, environment: str, log_dir: Path, level: int) -> list[logging.Handler]:
    """Console always; a rotating ``<log_dir>/app.log`` in production only."""

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if (environment or "").lower().strip() == "production":
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


def setup_logging(*, environment: str, log_dir: Path, level: str | None = None) -> None:
    """Configure root logging once; later calls are no-ops."""

    root = logging.getLogger()
    if root.handlers:
        return

    resolved = resolve_level(environment, level)
    logging.basicConfig(level=resolved, handlers=build_handlers(environment=environment, log_dir=log_dir, level=resolved))

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(resolved)
    # SQL echo at DEBUG is too chatty even in dev.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
