"""Logging helpers for the MRP inventory service.

Console logging is always enabled. Setting ``LOG_FILE`` adds a rotating
file handler, and rotated files older than ``LOG_RETENTION_DAYS`` are
removed when logging is configured.
"""

import logging
import os
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging() -> None:
    """Configure root logging once per process.

    The level comes from ``LOG_LEVEL`` (default ``INFO``).
    """

    global _configured
    if _configured:
        return

    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        _purge_old_logs(log_file, int(os.getenv("LOG_RETENTION_DAYS", "30")))

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger instance."""
    return logging.getLogger(name)


def flush_logs() -> None:
    """Flush all log handlers."""
    for handler in logging.getLogger().handlers:
        handler.flush()


def _purge_old_logs(log_file: str, retention_days: int) -> None:
    """Delete rotated log files older than ``retention_days``."""

    if retention_days <= 0:
        return

    log_path = Path(log_file).resolve()
    cutoff = datetime.now() - timedelta(days=retention_days)
    for file in log_path.parent.glob(f"{log_path.name}.*"):
        try:
            mtime = datetime.fromtimestamp(file.stat().st_mtime)
        except FileNotFoundError:
            continue
        if mtime < cutoff:
            file.unlink(missing_ok=True)


__all__ = ["configure_logging", "get_logger", "flush_logs"]
