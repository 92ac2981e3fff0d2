"""
Logging setup for the call bridge.

Everything logs through the single ``callbridge`` logger. Console output goes
to stdout; a size-rotated copy is written under ``logs/`` when that directory
can be created, which is best effort since containers often run read-only.
Per-call lines carry a ``[session_id]`` prefix added at the call site.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from callbridge.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path("logs")
LOG_FILE_NAME = "callbridge.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

_TRUTHY = {"1", "true", "yes", "on"}


def resolve_log_level(level: Optional[Union[str, int]] = None) -> int:
    """Pick the level: explicit argument, then DEBUG=true, then LOG_LEVEL, then INFO."""
    if isinstance(level, int):
        return level
    if level is None:
        if os.getenv("DEBUG", "").strip().lower() in _TRUTHY:
            return logging.DEBUG
        level = os.getenv("LOG_LEVEL", "INFO")
    return getattr(logging, level.strip().upper(), logging.INFO)


def _rotating_file_handler(log_dir: Path, formatter: logging.Formatter) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: Optional[Union[str, int]] = None, log_dir: Optional[Path] = LOG_DIR):
    """
    Attach console and rotating-file handlers to the ``callbridge`` logger.

    Safe to call more than once; earlier handlers are replaced.

    Args:
        level: Level name or number; read from the environment when omitted
        log_dir: Directory for the rotating log file, or None for console only

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_log_level(level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_dir is not None:
        try:
            logger.addHandler(_rotating_file_handler(Path(log_dir), formatter))
        except OSError as e:
            logger.warning(f"File logging disabled, cannot write to {log_dir}: {e}")

    # Keep uvicorn's root handlers from printing every line twice
    logger.propagate = False

    logger.debug(f"Logging configured at {logging.getLevelName(logger.level)}")
    return logger
