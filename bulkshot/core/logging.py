"""
Logging setup for bulkshot.

Every run logs to stdout and to a dated file under the log directory
(logs/bulkshot_YYYYMMDD.log by default). Modules get their logger through
get_logger(__name__); per-URL lines carry an "[i/n]" progress prefix.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


DEFAULT_LOG_LEVEL = "INFO"
LOG_FILE_PREFIX = "bulkshot"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every event-loop or driver detail at DEBUG
NOISY_LOGGERS = ("asyncio",)


def dated_log_path(log_dir: Union[str, Path, None] = None, when: Optional[datetime] = None) -> Path:
    """
    Path of the log file for a given day.

    Example:
        >>> dated_log_path("logs", datetime(2024, 1, 1))
        PosixPath('logs/bulkshot_20240101.log')
    """
    stamp = (when or datetime.now()).strftime("%Y%m%d")
    return Path(log_dir or "logs") / f"{LOG_FILE_PREFIX}_{stamp}.log"


def _level_number(level: str) -> int:
    return getattr(logging, str(level).upper(), logging.INFO)


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names fall back to INFO)
        log_file: Explicit log file; overrides log_dir
        console: Also log to stdout
        log_dir: Directory for the dated log file (default: logs/)

    Returns:
        The root logger
    """
    numeric_level = _level_number(level)
    log_path = Path(log_file) if log_file else dated_log_path(log_dir)
    log_path.parent.mkdir(exist_ok=True, parents=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if console:
        handlers.insert(0, logging.StreamHandler(sys.stdout))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    root_logger.info(f"Logging initialized - Level: {logging.getLevelName(numeric_level)}, File: {log_path}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one module (pass __name__)."""
    return logging.getLogger(name)


def init_cli_logging(verbose: bool = False, log_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Logging for the command-line shell.

    --verbose forces DEBUG; otherwise `level` (normally LOG_LEVEL from the
    application config) is used.
    """
    return setup_logging(level="DEBUG" if verbose else (level or DEFAULT_LOG_LEVEL), log_dir=log_dir)
