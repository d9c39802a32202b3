"""
Core utilities for bulkshot.

This module contains shared utilities used across all components:
- Configuration management
- Logging setup
- Exception hierarchy
- Structured error logging
"""

from bulkshot.core.logging import get_logger, setup_logging
from bulkshot.core.config import get_config, validate_config, Config
from bulkshot.core.errors import (
    BulkshotError,
    IngestionError,
    ConfigurationError,
    OutputDirectoryError,
    LaunchError,
    SessionLostError,
    CaptureCancelled,
)
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import (
    ErrorComponent,
    ErrorSeverity,
    ErrorType,
    ErrorStage,
    ErrorRecord,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "get_config",
    "validate_config",
    "Config",
    "BulkshotError",
    "IngestionError",
    "ConfigurationError",
    "OutputDirectoryError",
    "LaunchError",
    "SessionLostError",
    "CaptureCancelled",
    "get_error_logger",
    "ErrorComponent",
    "ErrorSeverity",
    "ErrorType",
    "ErrorStage",
    "ErrorRecord",
]
