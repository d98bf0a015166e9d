"""Root logger setup for the CLI and the admin API.

``SYSUPDATE_LOG_LEVEL`` takes a level name or number and wins over
``SYSUPDATE_DEBUG``. ``SYSUPDATE_LOG_FILE`` adds a file handler so
deployment runs leave a trail next to the audit log.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# third-party loggers that drown deployment output at DEBUG
_CHATTY_LOGGERS = ("urllib3", "requests")


def parse_level(value: object, default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    text = str(value or "").strip()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def level_from_env(env: Optional[Mapping[str, str]] = None) -> Optional[int]:
    env = os.environ if env is None else env
    explicit = env.get("SYSUPDATE_LOG_LEVEL")
    if explicit and explicit.strip():
        return parse_level(explicit)
    if str(env.get("SYSUPDATE_DEBUG", "")).strip().lower() in {"1", "true", "yes", "on"}:
        return logging.DEBUG
    return None


def configure_root(
    default_level: int | str = logging.INFO,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Configure the root logger once and return the effective level."""
    env = os.environ if env is None else env
    level = level_from_env(env)
    if level is None:
        level = parse_level(default_level)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
        log_file = str(env.get("SYSUPDATE_LOG_FILE", "")).strip()
        if log_file:
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            root.addHandler(handler)
    root.setLevel(level)

    quiet = max(level, logging.WARNING)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
    return level
