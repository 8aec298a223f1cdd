"""Logging bootstrap for topov runs.

All ``topov.*`` module loggers propagate to the ``topov`` logger configured
here. The dashboard owns the terminal, so it runs with ``console=False`` and
logs only to the rotating file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LOG_DIR


@dataclass(frozen=True)
class LoggingRuntime:
    """Resolved runtime logging configuration."""

    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def _parse_level(raw: str) -> tuple[str, int]:
    normalized = str(raw or "INFO").strip().upper()
    level = getattr(logging, normalized, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    return str(logging.getLevelName(level)), int(level)


def _default_log_path(log_dir: Path) -> str:
    log_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return str(log_dir / f"topov-{ts}-{os.getpid()}.log")


def _make_stream_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    return handler


def _make_file_handler(level: int, file_path: str) -> logging.Handler:
    handler = RotatingFileHandler(
        file_path,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    return handler


def configure(
    level: str = "INFO",
    *,
    console: bool = True,
    log_dir: Path = LOG_DIR,
) -> LoggingRuntime:
    """Configure the topov logger with a rotating file and optional stderr.

    Idempotent: repeated calls return the originally configured runtime.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level_name, level_no = _parse_level(os.environ.get("TOPOV_LOG_LEVEL", level))
    file_path = os.environ.get("TOPOV_LOG_FILE") or _default_log_path(log_dir)
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("topov")
    logger.setLevel(level_no)
    logger.propagate = False
    logger.handlers.clear()
    if console:
        logger.addHandler(_make_stream_handler(level_no))
    logger.addHandler(_make_file_handler(level_no, file_path))

    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level_no, file_path=file_path)
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    """Return configured logging runtime, if configure() has run."""
    return _RUNTIME


def reset() -> None:
    """Drop handlers installed by configure(); used between test runs."""
    global _RUNTIME
    logger = logging.getLogger("topov")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _RUNTIME = None
