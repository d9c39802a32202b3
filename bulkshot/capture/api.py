"""
Public entry points for embedding bulkshot in another program.

run() and run_from_file() own their event loop (asyncio.run); hosts that
already run a loop use run_async() / run_from_file_async() instead.
"""

import asyncio
import os
from typing import Any, List, Mapping, Optional, Union

from bulkshot.capture.ingest import ingest
from bulkshot.capture.models import RunSummary
from bulkshot.capture.options import CaptureOptions
from bulkshot.capture.orchestrator import run_batch

OptionsLike = Union[CaptureOptions, Mapping[str, Any], None]


async def run_async(urls: List[str], options: OptionsLike = None, **kwargs: Any) -> RunSummary:
    """Coroutine form of run(); kwargs are passed to run_batch()."""
    return await run_batch(urls, options, **kwargs)


async def run_from_file_async(
    path: Union[str, os.PathLike], options: OptionsLike = None, **kwargs: Any
) -> RunSummary:
    """Coroutine form of run_from_file()."""
    return await run_batch(ingest(path), options, **kwargs)


def run(urls: List[str], options: OptionsLike = None, **kwargs: Any) -> RunSummary:
    """
    Capture a list of URLs and block until the run finishes.

    Args:
        urls: Absolute URLs
        options: CaptureOptions, or a mapping of overrides (camelCase or
            snake_case keys)
        **kwargs: session_factory, cancel_token, on_result

    Returns:
        RunSummary

    Example:
        >>> summary = run(["https://example.com"], {"fileFormat": "jpeg", "quality": 90})
        >>> summary.results[0].status
        'success'
    """
    return asyncio.run(run_async(urls, options, **kwargs))


def run_from_file(
    path: Union[str, os.PathLike], options: OptionsLike = None, **kwargs: Any
) -> RunSummary:
    """
    Ingest a URL list file and capture every valid URL in it.

    Raises:
        IngestionError: If the file cannot be read
    """
    return asyncio.run(run_from_file_async(path, options, **kwargs))


__all__ = [
    "ingest",
    "run",
    "run_async",
    "run_from_file",
    "run_from_file_async",
]
