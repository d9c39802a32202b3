"""
Shared utility functions for bulkshot.

- URL validation and hostname/path extraction
- Run identifiers and duration formatting
"""

from bulkshot.utils.url_utils import validate_url, hostname_of, path_of, explicit_scheme
from bulkshot.utils.date_utils import run_timestamp, format_duration

__all__ = [
    # URL utilities
    "validate_url",
    "hostname_of",
    "path_of",
    "explicit_scheme",
    # Date utilities
    "run_timestamp",
    "format_duration",
]
