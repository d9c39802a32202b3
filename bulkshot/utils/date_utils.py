"""
Date and run-identifier utilities for bulkshot.
"""

from datetime import datetime
from typing import Optional


RUN_ID_FORMAT = "%Y-%m-%d_%H-%M-%S"


def run_timestamp(now: Optional[datetime] = None) -> str:
    """
    Build the run identifier shared by every artifact of one batch.

    Local time, formatted YYYY-MM-DD_HH-MM-SS, so it is safe to use as a
    directory or filename component on every platform. Two runs started in
    the same second are kept apart by the orchestrator, which suffixes the
    later one.

    Args:
        now: Moment to format (default: current local time)

    Returns:
        Run identifier string

    Example:
        >>> run_timestamp(datetime(2024, 1, 1, 0, 0, 0))
        '2024-01-01_00-00-00'
    """
    return (now or datetime.now()).strftime(RUN_ID_FORMAT)


def format_duration(seconds: Optional[float]) -> str:
    """
    Format an elapsed time for progress and summary lines.

    Example:
        >>> format_duration(75.4)
        '1m 15s'
        >>> format_duration(3725)
        '1h 02m 05s'
    """
    if seconds is None or seconds != seconds or seconds < 0:
        return "n/a"
    seconds = int(round(seconds))
    h, r = divmod(seconds, 3600)
    m, s = divmod(r, 60)
    if h > 0:
        return f"{h:d}h {m:02d}m {s:02d}s"
    if m > 0:
        return f"{m:d}m {s:02d}s"
    return f"{s:d}s"
