"""Logging setup for the togglenotes application."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "get_log_path"]

_DEFAULT_LOG_DIR = Path.home() / ".togglenotes" / "logs"
_LOG_FILE_NAME = "togglenotes.log"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3
# Event loop chatter stays at WARNING unless the app itself logs above that.
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Send log records to ``togglenotes.log`` and, optionally, stderr.

    Later calls return the existing log path unless ``force`` is set, which
    replaces the root handlers (used when settings switch on debug logging).
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    log_dir_path = Path(log_dir or os.environ.get("TOGGLENOTES_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_path = log_dir_path / _LOG_FILE_NAME

    logging.basicConfig(level=level, handlers=_build_handlers(log_path, level, console), force=True)
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the log file configured by :func:`setup_logging`, if any."""

    return _LOG_PATH


def _build_handlers(log_path: Path, level: int, console: bool) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers
