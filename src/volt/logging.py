"""Structured logging for volt.

The TUI owns the terminal, so nothing may be printed once it is running.
Everything goes to a rotating log file instead:

* **RotatingFileHandler** – 5 MB max, 3 backups.
* **Structured JSON** – each line is a JSON object with ``timestamp``,
  ``level``, ``logger``, ``message``, and optional ``context`` fields.
* **Log-level differentiation** – DEBUG for wizard transitions and
  validation rejections, INFO for load/save, WARNING for save and editor
  failures, ERROR for crashed actions.
* **Context support** – callers pass the setting ``key``, ``section``,
  wizard ``state`` etc. via the ``extra`` dict.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from typing import Any


# ── Log file path ────────────────────────────────────────────────────

VOLT_LOG = os.path.join(tempfile.gettempdir(), "volt.log")

# ── Rotation settings ────────────────────────────────────────────────

MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single-line JSON object.

    Fields:
        timestamp  – ISO-8601 with milliseconds
        level      – DEBUG / INFO / WARNING / ERROR / CRITICAL
        logger     – logger name
        message    – the log message
        context    – optional dict with key, section, state, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = getattr(record, "context", None)
        if ctx:
            entry["context"] = ctx
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_handler(
    path: str,
    formatter: logging.Formatter,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> RotatingFileHandler:
    """Create a RotatingFileHandler that writes to *path*."""
    os.makedirs(os.path.dirname(path) or tempfile.gettempdir(), exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


# ── Public helpers ────────────────────────────────────────────────────

_configured: set[str] = set()


def get_logger(
    name: str,
    log_file: str = VOLT_LOG,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Return a logger that writes structured JSON to *log_file*.

    Calling this multiple times with the same *name* returns the same
    logger (standard ``logging`` behaviour) but only adds the handler
    once per file.
    """
    logger = logging.getLogger(name)
    key = f"{name}:{log_file}"
    if key not in _configured:
        handler = _make_handler(log_file, _JsonFormatter())
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
        _configured.add(key)
    return logger


def log_context(
    *,
    key: str = "",
    section: str = "",
    state: str = "",
    **extra: Any,
) -> dict[str, Any]:
    """Build a context dict for structured log entries.

    Usage::

        _log.warning("Save failed", extra={"context": log_context(
            path="/home/me/.config/amp/settings.json"
        )})
    """
    ctx: dict[str, Any] = {}
    if key:
        ctx["key"] = key
    if section:
        ctx["section"] = section
    if state:
        ctx["state"] = state
    ctx.update(extra)
    return ctx
