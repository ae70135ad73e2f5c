"""
Logging configuration for benten processes.

Log files rotate by month: the configured name gets a ``-YYYY-MM`` suffix
(UTC) and is opened in append mode.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def monthly_log_path(log_file: str, now: Optional[datetime] = None) -> Path:
    """Return the log file path for the month of ``now``"""
    now = now or datetime.now(timezone.utc)
    return Path(f"{log_file}-{now.year:04d}-{now.month:02d}").expanduser()


def configure_logging(log_file: Optional[str] = None, level: str = "INFO") -> Optional[Path]:
    """
    Configure the root logger.

    Args:
        log_file: Base name of the log file, or None to log to stderr
        level: Logging level name

    Returns:
        Path of the opened log file, or None when logging to stderr
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    path = None
    if log_file:
        path = monthly_log_path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())

    # watchdog is chatty at DEBUG
    logging.getLogger("watchdog").setLevel(max(root.level, logging.INFO))
    return path
