"""Logging configuration for the language server process.

stdout carries the editor protocol, so every handler writes to stderr or
to an optional rotating log file (``LOG_FILE``).
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


class _PlainFormatter(logging.Formatter):
    """Plain-text formatter (no ANSI codes)."""

    def format(self, record: logging.LogRecord) -> str:
        ts = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        name = record.name.split(".")[-1][:20]
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        return f"{ts} {record.levelname:<8s} [{name:>20s}] {msg}"


def configure_logging(level: str = "INFO", log_file: str = "") -> None:
    """Install stderr (and optional file) handlers on the root logger."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_PlainFormatter())
    handlers: list[logging.Handler] = [handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(_PlainFormatter())
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # pygls logs every message at DEBUG/INFO
    logging.getLogger("pygls").setLevel(max(log_level, logging.WARNING))
