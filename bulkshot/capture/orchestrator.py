"""
Batch orchestration: run every URL through the capture pipeline.

run_batch() processes URLs strictly one at a time with a single shared
CaptureSession, so results come back in input order. Per-URL failures are
recorded and the loop continues; if the browser dies or the run is
canceled, every URL not yet attempted is recorded as failed. A summary is
always produced and written to <output_dir>/_log_<run_id>.json.

Only option, output-directory and launch errors propagate to the caller.
"""

import time
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Set, Union

from bulkshot.capture.models import BATCH_ERROR_PREFIX, CANCELED_MESSAGE, CaptureResult, RunSummary
from bulkshot.capture.options import CaptureOptions, resolve_options
from bulkshot.capture.paths import claim_path
from bulkshot.capture.pipeline import CancellationToken, capture_page
from bulkshot.capture.session import CaptureSession
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorSeverity, ErrorStage, ErrorType
from bulkshot.core.errors import OutputDirectoryError
from bulkshot.core.logging import get_logger
from bulkshot.utils.date_utils import format_duration, run_timestamp
from bulkshot.utils.url_utils import hostname_of

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, CaptureResult], Any]
SessionFactory = Callable[[CaptureOptions], Any]

SUMMARY_FILE_TEMPLATE = "_log_{run_id}.json"


def summary_path(output_dir: Path, run_id: str) -> Path:
    return Path(output_dir) / SUMMARY_FILE_TEMPLATE.format(run_id=run_id)


def ensure_output_dir(output_dir: Path) -> Path:
    """
    Create the base output directory (and parents).

    Raises:
        OutputDirectoryError: If it cannot be created
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(f"Failed to create output directory {output_dir}: {e}") from e
    if not output_dir.is_dir():
        raise OutputDirectoryError(f"Output path is not a directory: {output_dir}")
    return output_dir


def claim_run_id(output_dir: Path, base: str) -> str:
    """
    Reserve a run id by creating its summary file exclusively.

    A run started in the same second as an earlier one writing to the same
    output directory gets base_2, base_3, ... so neither overwrites the
    other's summary or captures. write_summary() later fills the file in.

    Raises:
        OutputDirectoryError: If the output directory is not writable
    """
    run_id, n = base, 1
    while True:
        path = summary_path(output_dir, run_id)
        try:
            with open(path, "x", encoding="utf-8"):
                return run_id
        except FileExistsError:
            n += 1
            run_id = f"{base}_{n}"
        except OSError as e:
            raise OutputDirectoryError(f"Cannot write to output directory {output_dir}: {e}") from e


def write_summary(summary: RunSummary, output_dir: Path) -> Optional[Path]:
    """
    Persist the run summary as JSON.

    Failures are logged and recorded, never raised.

    Returns:
        Path written, or None if writing failed
    """
    path = summary_path(output_dir, summary.run_id)
    try:
        path.write_text(summary.to_json(), "utf-8")
    except OSError as e:
        logger.error(f"Failed to write results log file {path}: {e}")
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.ORCHESTRATOR,
            stage=ErrorStage.WRITE_SUMMARY,
            domain="local",
            run_id=summary.run_id,
            metadata={"path": str(path)},
        )
        return None
    logger.info(f"Results log saved to: {path}")
    return path


def _notify(on_result: Optional[ProgressCallback], index: int, total: int, result: CaptureResult, run_id: str) -> None:
    if on_result is None:
        return
    try:
        on_result(index, total, result)
    except Exception as e:
        logger.warning(f"Progress callback failed for {result.url}: {e}")
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.ORCHESTRATOR,
            stage=ErrorStage.PROGRESS_CALLBACK,
            domain=hostname_of(result.url),
            url=result.url,
            run_id=run_id,
            severity=ErrorSeverity.WARNING,
        )


async def run_batch(
    urls: Sequence[str],
    options: Union[CaptureOptions, Mapping[str, Any], None] = None,
    *,
    session_factory: SessionFactory = CaptureSession,
    cancel_token: Optional[CancellationToken] = None,
    on_result: Optional[ProgressCallback] = None,
) -> RunSummary:
    """
    Capture every URL and return the run summary.

    Args:
        urls: Absolute URLs, processed in order (duplicates allowed)
        options: Overrides merged over DEFAULT_OPTIONS
        session_factory: Builds the browser session (CaptureSession by default)
        cancel_token: Optional token to stop the run early
        on_result: Optional callback(index, total, result) after each URL;
            index is 1-based

    Returns:
        RunSummary with one CaptureResult per input URL

    Raises:
        ConfigurationError: Invalid options (raised before any browser work)
        OutputDirectoryError: Base output directory cannot be created
        LaunchError: Browser cannot be started

    Example:
        >>> summary = await run_batch(["https://example.com"], {"fileFormat": "pdf"})
        >>> summary.success + summary.failed
        1
    """
    opts = resolve_options(options)
    urls = list(urls)
    output_dir = ensure_output_dir(Path(opts.output_dir))
    run_id = claim_run_id(output_dir, run_timestamp())
    total = len(urls)

    logger.info(f"Starting capture run {run_id} for {total} URLs")
    logger.debug(f"Using effective configuration: {opts.describe()}")

    if not urls:
        logger.warning("No valid URLs to capture.")
        summary = RunSummary.from_results(run_id, [])
        write_summary(summary, output_dir)
        return summary

    results: List[CaptureResult] = []
    taken: Set[Path] = set()
    attempted = 0
    abort_reason: Optional[str] = None
    started = time.monotonic()

    session = session_factory(opts)
    await session.start()
    try:
        for url in urls:
            if cancel_token is not None and cancel_token.cancelled:
                break

            attempted += 1
            progress = f"[{attempted}/{total}]"
            logger.info(f"{progress} Processing: {url}")

            try:
                target = claim_path(taken, output_dir, run_id, url, opts.file_format, opts.layout)
                result = await capture_page(
                    session, url, target, opts,
                    cancel_token=cancel_token, progress=progress, run_id=run_id,
                )
            except Exception as e:
                logger.error(f"✗ {progress} Error processing {url}: {e}")
                get_error_logger().log_exception(
                    e,
                    component=ErrorComponent.ORCHESTRATOR,
                    stage=ErrorStage.BATCH_LOOP,
                    domain=hostname_of(url),
                    url=url,
                    run_id=run_id,
                )
                result = CaptureResult.failed(url, str(e) or type(e).__name__)

            results.append(result)
            _notify(on_result, attempted, total, result, run_id)

            if not session.is_alive:
                abort_reason = "browser process is no longer running"
                break
            if result.error == CANCELED_MESSAGE or (cancel_token is not None and cancel_token.cancelled):
                break
    except Exception as e:
        # anything escaping the loop body itself is session-wide
        abort_reason = str(e) or type(e).__name__
        logger.error(f"A critical error occurred: {abort_reason}")
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.ORCHESTRATOR,
            stage=ErrorStage.BATCH_LOOP,
            domain="local",
            run_id=run_id,
            severity=ErrorSeverity.CRITICAL,
        )
    finally:
        await session.shutdown()

    remaining = urls[attempted:]
    if remaining:
        if abort_reason is not None:
            message = f"{BATCH_ERROR_PREFIX}: {abort_reason}"
            logger.error(f"Marking {len(remaining)} unattempted URLs as failed ({message})")
            get_error_logger().log_error(
                component=ErrorComponent.ORCHESTRATOR,
                stage=ErrorStage.BATCH_LOOP,
                error_type=ErrorType.SESSION_LOST,
                domain="local",
                message=message,
                run_id=run_id,
                metadata={"remaining": len(remaining), "attempted": attempted},
            )
        else:
            message = CANCELED_MESSAGE
            logger.warning(f"Run canceled; {len(remaining)} URLs not attempted")
        for url in remaining:
            result = CaptureResult.failed(url, message)
            results.append(result)
            _notify(on_result, len(results), total, result, run_id)

    # a token that fires after the last URL finished cancels nothing
    canceled = any(r.error == CANCELED_MESSAGE for r in results)
    summary = RunSummary.from_results(run_id, results, canceled=canceled)
    logger.info(
        f"Process completed in {format_duration(time.monotonic() - started)}. "
        f"Summary: {summary.success} successful, {summary.failed} failed."
    )
    write_summary(summary, output_dir)
    return summary
