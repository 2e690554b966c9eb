"""Project logger: stderr plus a rotating file, with the upstream credential redacted from every record."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from gridscape.config.settings import settings
from gridscape.util.masking import scrub_secret


LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "gridscape.log"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class SecretRedactionFilter(logging.Filter):
    """Rewrites any record whose rendered message contains the configured API key."""

    def filter(self, record: logging.LogRecord) -> bool:
        secret = (settings.openrouter_api_key or "").strip()
        if not secret:
            return True
        message = record.getMessage()
        if secret in message:
            record.msg = scrub_secret(message, secret)
            record.args = None
        return True


def _resolve_level(raw: str) -> int:
    level = logging.getLevelName(str(raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _attach(target: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SecretRedactionFilter())
    target.addHandler(handler)


def _build_logger() -> logging.Logger:
    configured_logger = logging.getLogger("gridscape")
    if configured_logger.handlers:
        return configured_logger

    level = _resolve_level(settings.log_level)
    configured_logger.setLevel(level)
    _attach(configured_logger, logging.StreamHandler(), level)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        _attach(
            configured_logger,
            RotatingFileHandler(LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"),
            level,
        )
    except OSError:
        # read-only filesystem: stderr only
        pass

    configured_logger.propagate = False
    return configured_logger


logger = _build_logger()


def get_logger(name: str) -> logging.Logger:
    """Child logger under the gridscape namespace."""

    return logger.getChild(name)
