from __future__ import annotations

import logging
import os
from pathlib import Path

_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSEY_VALUES = {"0", "false", "no", "off"}

DEPSTORE_ENV = "TAURUS_DEPSTORE"
LOG_ENV = "TAURUS_LOG"

_LOG_LEVEL_NAMES: dict[str, int] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def env_text(name: str, *, default: str = "") -> str:
    return os.getenv(name, default).strip()


def env_enabled_flag(name: str, *, value: str | None = None) -> bool:
    text = value if isinstance(value, str) else os.getenv(name, "")
    return text.strip().lower() in _TRUTHY_VALUES


def depstore_override(*, value: str | None = None) -> Path | None:
    text = value.strip() if isinstance(value, str) else env_text(DEPSTORE_ENV)
    if not text:
        return None
    return Path(text)


def log_level_from_env(*, value: str | None = None) -> int | None:
    """Resolve the TAURUS_LOG setting to a logging level.

    Unset or falsey values keep logging silent. Truthy flags mean debug;
    otherwise the text is read as a level name.
    """
    text = value if isinstance(value, str) else os.getenv(LOG_ENV)
    if text is None:
        return None
    normalized = text.strip().lower()
    if not normalized or normalized in _FALSEY_VALUES:
        return None
    if env_enabled_flag(LOG_ENV, value=normalized):
        return logging.DEBUG
    return _LOG_LEVEL_NAMES.get(normalized, logging.DEBUG)
