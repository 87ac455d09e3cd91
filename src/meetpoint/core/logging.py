"""Loguru logging configuration for the CLI and embedding applications.

One stderr sink, either human-readable or one JSON object per line, plus
an optional rotating log file when a ``log_dir`` is provided.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"

LOG_FILE_NAME = "meetpoint.log"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, json_logs: bool = False) -> None:
    """Replace every Loguru sink with the meetpoint ones.

    Args:
        log_level: Minimum log level to emit, case-insensitive.
        log_dir: Optional directory for ``meetpoint.log``, rotated every
            24 hours and kept for 7 days.
        json_logs: Emit serialized JSON records instead of formatted lines,
            on stderr and in the log file.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=json_logs)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / LOG_FILE_NAME,
            level=level,
            format=_LOG_FORMAT,
            serialize=json_logs,
            rotation="24h",
            retention="7 days",
        )
