"""
Browser session for one capture run.

A CaptureSession owns exactly one Chromium process for the duration of a
run. Each URL gets its own BrowserContext, so cookies, storage and
credentials never leak from one page to the next.
"""

from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, Page, Playwright

from bulkshot.capture.options import CaptureOptions
from bulkshot.core.error_logger import get_error_logger
from bulkshot.core.error_models import ErrorComponent, ErrorSeverity, ErrorStage, ErrorType
from bulkshot.core.errors import LaunchError, SessionLostError
from bulkshot.core.logging import get_logger
from bulkshot.utils.url_utils import hostname_of

logger = get_logger(__name__)


# Needed when Chromium runs as root inside a container
CONTAINER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

MAX_SCROLL_TICKS = 100

SCROLL_TICK_JS = r"""
() => {
  const el = document.scrollingElement || document.documentElement;
  const before = window.pageYOffset;
  const scrollHeight = el.scrollHeight | 0;
  window.scrollBy(0, window.innerHeight);
  return {
    before: before,
    after: window.pageYOffset,
    viewport: window.innerHeight,
    scrollHeight: scrollHeight,
  };
}
"""


async def scroll_until_settled(page: Page, tick_interval_ms: int, max_ticks: int = MAX_SCROLL_TICKS) -> int:
    """
    Scroll down one viewport per tick until the page stops moving.

    Stops when (a) the scroll position did not advance although the page
    was already scrolled, (b) the viewport reached the bottom of the
    document, or (c) max_ticks ticks have run.

    Args:
        page: Playwright page instance
        tick_interval_ms: Wait before each tick
        max_ticks: Hard cap for infinite-scroll pages

    Returns:
        Number of ticks performed

    Example:
        >>> ticks = await scroll_until_settled(page, 300)
        >>> ticks <= 100
        True
    """
    ticks = 0
    while ticks < max_ticks:
        await page.wait_for_timeout(tick_interval_ms)
        state = await page.evaluate(SCROLL_TICK_JS)
        ticks += 1

        before = state.get("before", 0)
        after = state.get("after", 0)
        stalled = after == before and before > 0
        at_bottom = after + state.get("viewport", 0) >= state.get("scrollHeight", 0)
        if stalled or at_bottom:
            break

    logger.debug(f"Scrolled {page.url} in {ticks} ticks")
    return ticks


def cookies_for_page(cookies: List[Dict[str, Any]], url: str) -> List[Dict[str, Any]]:
    """
    Bind cookie records to the page being opened.

    Playwright needs either `url` or `domain` + `path`; a record with
    neither is bound to the page URL, a record with only `domain` gets
    path '/'.

    Example:
        >>> cookies_for_page([{"name": "sid", "value": "1"}], "https://a.com/x")
        [{'name': 'sid', 'value': '1', 'url': 'https://a.com/x'}]
    """
    out = []
    for cookie in cookies:
        c = dict(cookie)
        if not c.get("url") and not c.get("domain"):
            c["url"] = url
        elif c.get("domain") and not c.get("path") and not c.get("url"):
            c["path"] = "/"
        out.append(c)
    return out


class CaptureSession:
    """
    One headless Chromium shared by every page of a run.

    Usage:
        >>> async with CaptureSession(options) as session:
        ...     page = await session.open_page(url)
        ...     try:
        ...         await page.goto(url)
        ...     finally:
        ...         await session.close_page(page)
    """

    def __init__(self, options: CaptureOptions):
        self.options = options
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._disconnected = False
        self._closed = False

    async def __aenter__(self) -> "CaptureSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @property
    def is_alive(self) -> bool:
        """Whether the browser process is still connected."""
        if self._browser is None or self._disconnected or self._closed:
            return False
        return self._browser.is_connected()

    async def start(self) -> "CaptureSession":
        """
        Launch the browser.

        Raises:
            LaunchError: If Playwright or Chromium cannot be started
        """
        opts = self.options
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=opts.headless,
                args=CONTAINER_LAUNCH_ARGS,
            )
        except Exception as e:
            await self._stop_driver()
            get_error_logger().log_exception(
                e,
                component=ErrorComponent.SESSION,
                stage=ErrorStage.LAUNCH,
                domain="local",
                severity=ErrorSeverity.CRITICAL,
                error_type=ErrorType.LAUNCH_ERROR,
                metadata={"headless": opts.headless},
            )
            raise LaunchError(f"Failed to launch browser: {e}") from e

        self._browser.on("disconnected", self._on_disconnected)
        logger.info(
            f"Browser launched (headless={opts.headless}, "
            f"viewport={opts.width}x{opts.height}@{opts.device_scale_factor}x)"
        )
        return self

    def _on_disconnected(self, *_: Any) -> None:
        if not self._closed:
            logger.error("Browser disconnected unexpectedly")
        self._disconnected = True

    def _context_kwargs(self, url: str) -> Dict[str, Any]:
        opts = self.options
        kwargs: Dict[str, Any] = {
            "viewport": {"width": opts.width, "height": opts.height},
            "device_scale_factor": opts.device_scale_factor,
            "user_agent": opts.user_agent,
        }
        creds = opts.credentials_for(hostname_of(url))
        if creds is not None:
            kwargs["http_credentials"] = {"username": creds.username, "password": creds.password}
        return kwargs

    async def open_page(self, url: str) -> Page:
        """
        Open an isolated page configured for `url`.

        Applies viewport, device scale factor, user agent, and the
        hostname's credentials and cookies.

        Raises:
            SessionLostError: If the browser is gone
        """
        if not self.is_alive:
            raise SessionLostError("Browser is not running")

        context = await self._browser.new_context(**self._context_kwargs(url))
        try:
            cookies = self.options.cookies_for(hostname_of(url))
            if cookies:
                await context.add_cookies(cookies_for_page(cookies, url))
            return await context.new_page()
        except Exception:
            await context.close()
            raise

    async def close_page(self, page: Page) -> None:
        """Close a page and its context. Never raises."""
        try:
            await page.context.close()
        except Exception as e:
            logger.warning(f"Failed to close page {page.url}: {e}")

    async def scroll_until_settled(self, page: Page, tick_interval_ms: int, max_ticks: int = MAX_SCROLL_TICKS) -> int:
        return await scroll_until_settled(page, tick_interval_ms, max_ticks)

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._browser is not None:
            try:
                await self._browser.close()
                logger.info("Browser closed.")
            except Exception as e:
                logger.warning(f"Error while closing browser: {e}")
            self._browser = None

        await self._stop_driver()

    async def _stop_driver(self) -> None:
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error while stopping Playwright: {e}")
            self._playwright = None
