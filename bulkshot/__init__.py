"""
bulkshot: capture screenshots and PDFs of many web pages in one run.

    >>> import bulkshot
    >>> urls = bulkshot.ingest("configs/urls.txt")
    >>> summary = bulkshot.run(urls, {"fileFormat": "pdf"})
    >>> print(summary.success, summary.failed)
"""

from bulkshot.capture.ingest import ingest
from bulkshot.capture.options import CaptureOptions
from bulkshot.capture.models import CaptureResult, RunSummary
from bulkshot.core.errors import (
    BulkshotError,
    IngestionError,
    ConfigurationError,
    OutputDirectoryError,
    LaunchError,
)

__version__ = "0.1.0"

_LAZY = ("run", "run_async", "run_from_file", "run_from_file_async", "run_batch", "CancellationToken")


def __getattr__(name):
    """Lazy loading for playwright-dependent names."""
    if name in _LAZY:
        from bulkshot import capture

        return getattr(capture, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ingest",
    "CaptureOptions",
    "CaptureResult",
    "RunSummary",
    "BulkshotError",
    "IngestionError",
    "ConfigurationError",
    "OutputDirectoryError",
    "LaunchError",
    *_LAZY,
]
