"""
core/logger.py
One stdout handler on the `voice_relay` logger, every module logs through a child.
JSON lines in production, readable lines when DEBUG=true.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from voice_relay.core.config import settings

ROOT_LOGGER = "voice_relay"
TEXT_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """One object per line; UTC timestamps with milliseconds, text left unescaped."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT) if settings.DEBUG else JSONFormatter())
        root.addHandler(handler)
        root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return root


def get_logger(name: str) -> logging.Logger:
    _root()
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"   # e.g. __main__ under `python -m`
    return logging.getLogger(name)


def mask(value: Any) -> str:
    """Presence indicator for a secret: never the value itself."""
    return "***" if value else "missing"
