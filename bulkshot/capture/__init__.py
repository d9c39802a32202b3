"""
Capture module: bulk screenshots and PDFs of web pages.

Module Structure:
- ingest: URL list parsing and validation
- paths: Output path derivation
- options: Capture options and their validation
- models: CaptureResult and RunSummary
- session: Shared browser session (requires playwright)
- pipeline: Per-URL capture steps (requires playwright)
- orchestrator: Batch loop and summary log (requires playwright)
- api: run / run_from_file entry points (requires playwright)
"""

# Export ingestion, paths, options and models directly (no playwright dependency)
from bulkshot.capture.ingest import (
    UrlParseResult,
    parse_url,
    parse_url_lines,
    read_urls_from_file,
)
from bulkshot.capture.paths import (
    sanitize_hostname,
    sanitize_path,
    derive_path,
    claim_path,
)
from bulkshot.capture.options import (
    CaptureOptions,
    HttpCredentials,
    DEFAULT_OPTIONS,
    resolve_options,
)
from bulkshot.capture.models import (
    CaptureStatus,
    CaptureResult,
    RunSummary,
)


_LAZY = {
    "CaptureSession": "bulkshot.capture.session",
    "scroll_until_settled": "bulkshot.capture.session",
    "CancellationToken": "bulkshot.capture.pipeline",
    "PipelineStage": "bulkshot.capture.pipeline",
    "capture_page": "bulkshot.capture.pipeline",
    "run_batch": "bulkshot.capture.orchestrator",
    "run": "bulkshot.capture.api",
    "run_async": "bulkshot.capture.api",
    "run_from_file": "bulkshot.capture.api",
    "run_from_file_async": "bulkshot.capture.api",
}


# Lazy loading for playwright-dependent names
def __getattr__(name):
    """Lazy loading for playwright-dependent names."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib

    return getattr(importlib.import_module(module_name), name)


__all__ = [
    # Ingestion (no playwright dependency)
    "UrlParseResult",
    "parse_url",
    "parse_url_lines",
    "read_urls_from_file",
    # Paths
    "sanitize_hostname",
    "sanitize_path",
    "derive_path",
    "claim_path",
    # Options and models
    "CaptureOptions",
    "HttpCredentials",
    "DEFAULT_OPTIONS",
    "resolve_options",
    "CaptureStatus",
    "CaptureResult",
    "RunSummary",
    # Browser work (require playwright - lazy loaded)
    *_LAZY,
]
