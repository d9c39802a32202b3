"""
Error records for the capture run.

Each recovered failure (a URL that could not be captured, a summary that
could not be written, a browser that died mid-run) becomes one ErrorRecord.
The error logger appends them as JSON lines so a run can be audited after
the fact without parsing the human-readable log.
"""

import json
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict


MAX_MESSAGE_CHARS = 5000
MAX_STACK_CHARS = 10000


class ErrorComponent(str, Enum):
    """Where in bulkshot the failure happened."""
    INGEST = "ingest"
    SESSION = "session"
    PIPELINE = "pipeline"
    ORCHESTRATOR = "orchestrator"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorType(str, Enum):
    """Failure categories used for grouping records."""
    VALIDATION_ERROR = "validation_error"
    PARSE_ERROR = "parse_error"

    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    HTTP_ERROR = "http_error"

    BROWSER_ERROR = "browser_error"
    NAVIGATION_ERROR = "navigation_error"
    CAPTURE_ERROR = "capture_error"
    LAUNCH_ERROR = "launch_error"
    SESSION_LOST = "session_lost"

    FILE_ERROR = "file_error"
    CANCELLED = "cancelled"
    CONFIG_ERROR = "config_error"

    UNKNOWN = "unknown"


class ErrorStage:
    """
    Stage names that are not pipeline stages.

    Per-URL failures use PipelineStage values ("navigating", "capturing",
    ...) directly; the constants below cover the steps around them.
    """
    PARSE_LINE = "parse_line"
    READ_URL_FILE = "read_url_file"
    VALIDATE_CONFIG = "validate_config"
    RESOLVE_OPTIONS = "resolve_options"
    LAUNCH = "launch"
    BATCH_LOOP = "batch_loop"
    WRITE_SUMMARY = "write_summary"
    PROGRESS_CALLBACK = "progress_callback"


# Checked in order; the first rule that matches decides the type.
# Each rule is (substrings of the class name, substrings of the message, type).
CLASSIFICATION_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...], ErrorType], ...] = (
    (("cancel",), (), ErrorType.CANCELLED),
    (("launch",), (), ErrorType.LAUNCH_ERROR),
    (("sessionlost",), (), ErrorType.SESSION_LOST),
    (("configuration", "validation"), (), ErrorType.CONFIG_ERROR),
    (("timeout",), ("timeout",), ErrorType.TIMEOUT),
    (("connection",), ("net::err_",), ErrorType.CONNECTION_ERROR),
    (("http",), (), ErrorType.HTTP_ERROR),
    ((), ("target closed", "browser has been closed"), ErrorType.SESSION_LOST),
    (("browser",), (), ErrorType.BROWSER_ERROR),
    (("file",), (), ErrorType.FILE_ERROR),
)

# Routine capture failures, recorded without a stack trace at ERROR
ROUTINE_EXCEPTIONS = frozenset({
    "TimeoutError",
    "Error",  # playwright.async_api.Error
    "FileNotFoundError",
    "PermissionError",
    "CaptureCancelled",
    "ValueError",
})


def classify_exception(exc: BaseException) -> ErrorType:
    """Map an exception to an ErrorType by class name, message and origin."""
    name = type(exc).__name__.lower()
    text = str(exc).lower()
    for name_parts, text_parts, error_type in CLASSIFICATION_RULES:
        if any(p in name for p in name_parts) or any(p in text for p in text_parts):
            return error_type

    if "playwright" in type(exc).__module__:
        return ErrorType.BROWSER_ERROR
    if isinstance(exc, OSError):
        return ErrorType.FILE_ERROR
    return ErrorType.UNKNOWN


def wants_stack_trace(exc: BaseException, severity: ErrorSeverity) -> bool:
    if severity == ErrorSeverity.CRITICAL:
        return True
    if severity != ErrorSeverity.ERROR:
        return False
    return type(exc).__name__ not in ROUTINE_EXCEPTIONS


def format_stack(exc: BaseException) -> str:
    text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    if len(text) > MAX_STACK_CHARS:
        text = text[:MAX_STACK_CHARS] + "\n... (truncated)"
    return text


class ErrorRecord(BaseModel):
    """
    One recovered failure, written as a single JSON line.

    Validators repair rather than reject (blank domain, blank message,
    unserializable metadata), so recording a failure cannot itself fail
    on bad input.
    """
    component: ErrorComponent
    stage: str = Field(..., min_length=1, max_length=100)
    error_type: ErrorType
    severity: ErrorSeverity = ErrorSeverity.ERROR
    domain: str = Field(..., min_length=1, max_length=255, description="Hostname of the URL")
    message: str = Field(..., min_length=1)

    url: Optional[str] = Field(None, max_length=2048)
    run_id: Optional[str] = Field(None, max_length=64)
    exception_type: Optional[str] = Field(None, max_length=255, description="module.ClassName")
    stack_trace: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )

    @field_validator("stage")
    @classmethod
    def snake_case_stage(cls, v: str) -> str:
        """Normalize e.g. "Write Summary" to "write_summary"."""
        v = v.strip()
        return v.lower().replace(" ", "_") if v else "unknown"

    @field_validator("domain", mode="before")
    @classmethod
    def default_domain(cls, v: Optional[str]) -> str:
        return v if v and str(v).strip() else "unknown"

    @field_validator("message", mode="before")
    @classmethod
    def bounded_message(cls, v: Optional[str]) -> str:
        text = str(v).strip() if v is not None else ""
        return text[:MAX_MESSAGE_CHARS] if text else "No error message provided"

    @field_validator("metadata")
    @classmethod
    def json_safe_metadata(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Stringify any value json.dumps cannot handle."""
        safe = {}
        for key, value in v.items():
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            safe[key] = value
        return safe

    @classmethod
    def from_exception(
        cls,
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
    ) -> "ErrorRecord":
        """
        Build a record from a caught exception.

        error_type is inferred with classify_exception() unless given.
        The stack trace is kept for CRITICAL records and for unexpected
        exceptions at ERROR, and dropped otherwise, unless
        include_stack_trace says explicitly.

        Example:
            >>> try:
            ...     await page.goto(url, timeout=opts.timeout)
            ... except PlaywrightTimeoutError as e:
            ...     record = ErrorRecord.from_exception(
            ...         e,
            ...         component=ErrorComponent.PIPELINE,
            ...         stage=PipelineStage.NAVIGATING.value,
            ...         domain=hostname_of(url),
            ...         url=url,
            ...         run_id=run_id,
            ...     )
        """
        if include_stack_trace is None:
            include_stack_trace = wants_stack_trace(exc, severity)
        exc_class = type(exc)

        return cls(
            component=component,
            stage=stage,
            error_type=error_type or classify_exception(exc),
            severity=severity,
            domain=domain,
            url=url,
            run_id=run_id,
            message=str(exc) or f"{exc_class.__name__} occurred",
            exception_type=f"{exc_class.__module__}.{exc_class.__name__}",
            stack_trace=format_stack(exc) if include_stack_trace else None,
            metadata=metadata or {},
        )
