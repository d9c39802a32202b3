"""
Per-URL capture pipeline.

capture_page() walks one URL through

    CONFIGURING -> NAVIGATING -> SETTLING -> SCROLLING -> RESETTING_SCROLL
    -> CAPTURING -> CLOSED

and always returns a CaptureResult. The page is released on every path.
Settling and scrolling are skipped when disabled in the options.
"""

import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import Page

from bulkshot.capture.models import CANCELED_MESSAGE, CaptureResult
from bulkshot.capture.options import CaptureOptions
from bulkshot.capture.session import MAX_SCROLL_TICKS
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorSeverity, ErrorType
from bulkshot.core.errors import CaptureCancelled
from bulkshot.core.logging import get_logger
from bulkshot.utils.url_utils import hostname_of

logger = get_logger(__name__)


class PipelineStage(str, Enum):
    CONFIGURING = "configuring"
    NAVIGATING = "navigating"
    SETTLING = "settling"
    SCROLLING = "scrolling"
    RESETTING_SCROLL = "resetting_scroll"
    CAPTURING = "capturing"
    CLOSED = "closed"


STAGE_FAILURE_LABELS = {
    PipelineStage.CONFIGURING: "Page setup failed",
    PipelineStage.NAVIGATING: "Navigation failed",
    PipelineStage.SETTLING: "Settle delay failed",
    PipelineStage.SCROLLING: "Auto-scroll failed",
    PipelineStage.RESETTING_SCROLL: "Scroll reset failed",
    PipelineStage.CAPTURING: "Capture failed",
}

SCROLL_RESET_PAUSE_MS = 500

PDF_OPTIONS: Dict[str, Any] = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "1cm", "right": "1cm", "bottom": "1cm", "left": "1cm"},
}


class CancellationToken:
    """
    Thread-safe cancel flag for a run.

    A GUI thread may call cancel() while the run executes on another
    thread's event loop. The pipeline checks it before navigating and
    before capturing; the orchestrator checks it between URLs.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CaptureCancelled(CANCELED_MESSAGE)


def _short_error(exc: BaseException) -> str:
    # Playwright appends a multi-line call log; the first line is the cause
    text = str(exc).strip()
    first = text.splitlines()[0].strip() if text else ""
    return first or type(exc).__name__


async def navigate(page: Page, url: str, options: CaptureOptions) -> None:
    """
    Load `url` and wait for every configured completion condition.

    Playwright's goto() takes a single condition; any further ones are
    awaited with wait_for_load_state() under the same timeout.
    """
    first, *rest = options.wait_until
    await page.goto(url, wait_until=first, timeout=options.timeout)
    for state in rest:
        await page.wait_for_load_state(state, timeout=options.timeout)


async def render(page: Page, target: Path, options: CaptureOptions) -> None:
    """Write the page to `target` as PDF or image."""
    target.parent.mkdir(parents=True, exist_ok=True)

    if options.is_document:
        await page.pdf(path=str(target), **PDF_OPTIONS)
        return

    screenshot_kwargs: Dict[str, Any] = {
        "path": str(target),
        "full_page": options.full_page,
        "type": options.file_format,
    }
    if options.file_format == "jpeg":
        screenshot_kwargs["quality"] = options.quality
    await page.screenshot(**screenshot_kwargs)


async def capture_page(
    session,
    url: str,
    target: Path,
    options: CaptureOptions,
    cancel_token: Optional[CancellationToken] = None,
    progress: str = "",
    run_id: Optional[str] = None,
) -> CaptureResult:
    """
    Capture one URL into `target`.

    Args:
        session: CaptureSession (or anything with open_page, close_page
            and scroll_until_settled)
        url: Absolute URL
        target: Output file path
        options: Resolved capture options
        cancel_token: Optional token checked before navigating and capturing
        progress: Log prefix such as "[2/10]"
        run_id: Run identifier for error records

    Returns:
        CaptureResult, success or failed. Never raises for per-URL errors.
    """
    stage = PipelineStage.CONFIGURING
    page = None
    prefix = f"{progress} " if progress else ""
    try:
        page = await session.open_page(url)

        stage = PipelineStage.NAVIGATING
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        logger.info(f"{prefix}Navigating...")
        await navigate(page, url, options)
        logger.debug(f"{prefix}Navigation complete.")

        if options.delay > 0:
            stage = PipelineStage.SETTLING
            logger.debug(f"{prefix}Waiting for initial delay: {options.delay}ms...")
            await page.wait_for_timeout(options.delay)

        if options.scroll_page:
            stage = PipelineStage.SCROLLING
            ticks = await session.scroll_until_settled(page, options.scroll_delay, MAX_SCROLL_TICKS)
            logger.debug(f"{prefix}Scrolling complete after {ticks} ticks.")

            stage = PipelineStage.RESETTING_SCROLL
            await page.evaluate("() => window.scrollTo(0, 0)")
            await page.wait_for_timeout(SCROLL_RESET_PAUSE_MS)

        stage = PipelineStage.CAPTURING
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        logger.info(f"{prefix}Writing {options.file_format.upper()}: {target}")
        await render(page, target, options)

        logger.info(f"✓ {prefix}Saved: {target}")
        return CaptureResult.succeeded(url, target)

    except CaptureCancelled as e:
        logger.warning(f"✗ {prefix}Canceled before {stage.value}: {url}")
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.PIPELINE,
            stage=stage.value,
            domain=hostname_of(url),
            url=url,
            run_id=run_id,
            severity=ErrorSeverity.INFO,
            error_type=ErrorType.CANCELLED,
        )
        return CaptureResult.failed(url, CANCELED_MESSAGE)

    except Exception as e:
        message = f"{STAGE_FAILURE_LABELS[stage]}: {_short_error(e)}"
        logger.error(f"✗ {prefix}Error processing {url}: {message}")
        get_error_logger().log_exception(
            e,
            component=ErrorComponent.PIPELINE,
            stage=stage.value,
            domain=hostname_of(url),
            url=url,
            run_id=run_id,
            metadata={"target": str(target), "timeout_ms": options.timeout},
        )
        return CaptureResult.failed(url, message)

    finally:
        if page is not None:
            await session.close_page(page)
            logger.debug(f"{prefix}Page {PipelineStage.CLOSED.value}.")
