"""
JSONL sink for ErrorRecord entries.

Records for a UTC day go to <error_log_dir>/errors_YYYYMMDD.jsonl, one JSON
object per line, so several runs on the same day share a file and can be
told apart by run_id. Recording never raises: a broken disk or a malformed
call is reported on the standard logger and the capture run carries on.
"""

import json
from pathlib import Path
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone

from bulkshot.core.config import get_config
from bulkshot.core.logging import get_logger
from bulkshot.core.error_models import (
    ErrorRecord,
    ErrorComponent,
    ErrorSeverity,
    ErrorType,
)

logger = get_logger(__name__)

_error_logger: Optional["ErrorLogger"] = None


def utc_day(when: Optional[datetime] = None) -> str:
    return (when or datetime.now(timezone.utc)).strftime("%Y%m%d")


class ErrorLogger:
    """
    Appends ErrorRecord lines to the day's file.

    Usage:
        >>> get_error_logger().log_exception(
        ...     e,
        ...     component=ErrorComponent.PIPELINE,
        ...     stage=PipelineStage.NAVIGATING.value,
        ...     domain=hostname_of(url),
        ...     url=url,
        ...     run_id=run_id,
        ... )
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self._log_dir = Path(log_dir) if log_dir else get_config().error_log_dir
        self._dir_ready = False

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def file_for(self, date_str: Optional[str] = None) -> Path:
        return self._log_dir / f"errors_{date_str or utc_day()}.jsonl"

    def log_error(
        self,
        component: ErrorComponent,
        stage: str,
        error_type: ErrorType,
        domain: str,
        message: str,
        url: Optional[str] = None,
        run_id: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        exception_type: Optional[str] = None,
        stack_trace: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record a failure that has no exception object behind it, such as
        URLs left unattempted after the browser died.

        Returns:
            True if the line was written
        """
        try:
            record = ErrorRecord(
                component=component,
                stage=stage,
                error_type=error_type,
                severity=severity,
                domain=domain,
                url=url,
                run_id=run_id,
                message=message,
                exception_type=exception_type,
                stack_trace=stack_trace,
                metadata=metadata or {},
            )
        except Exception as e:
            logger.error(f"Invalid error record ({e}); dropped message: {message}")
            return False
        return self._append(record)

    def log_exception(
        self,
        exc: BaseException,
        component: ErrorComponent,
        stage: str,
        domain: str,
        url: Optional[str] = None,
        run_id: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        error_type: Optional[ErrorType] = None,
        include_stack_trace: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record a caught exception; see ErrorRecord.from_exception."""
        try:
            record = ErrorRecord.from_exception(
                exc,
                component=component,
                stage=stage,
                domain=domain,
                url=url,
                run_id=run_id,
                severity=severity,
                error_type=error_type,
                include_stack_trace=include_stack_trace,
                metadata=metadata,
            )
        except Exception as e:
            logger.error(f"Invalid error record ({e}); dropped {type(exc).__name__}: {exc}")
            return False
        return self._append(record)

    def _append(self, record: ErrorRecord) -> bool:
        logger.debug(
            f"error record: {record.component}/{record.stage} "
            f"{record.error_type} {record.url or record.domain}: {record.message}"
        )
        try:
            if not self._dir_ready:
                self._log_dir.mkdir(parents=True, exist_ok=True)
                self._dir_ready = True
            line = json.dumps(record.model_dump())
            with open(self.file_for(), "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Could not write error record to {self._log_dir}: {e}")
            return False
        return True

    def read_errors(self, date_str: Optional[str] = None, run_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Records for one UTC day (YYYYMMDD, default today), oldest first.

        Pass run_id to keep only one run's records. Lines that are not
        valid JSON (a write cut short) are skipped with a warning.
        """
        path = self.file_for(date_str)
        if not path.exists():
            return []

        rows = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning(f"Skipping corrupt line in {path}")
                    continue
                if run_id is None or row.get("run_id") == run_id:
                    rows.append(row)
        return rows


def get_error_logger() -> ErrorLogger:
    """Shared ErrorLogger, writing under Config.error_log_dir unless replaced."""
    global _error_logger
    if _error_logger is None:
        _error_logger = ErrorLogger()
    return _error_logger


def set_error_logger(error_logger: Optional[ErrorLogger]) -> None:
    """Install a logger (tests point it at a temp dir); None restores the default."""
    global _error_logger
    _error_logger = error_logger
