"""
Unit tests for the browser session and the scroll helper.

Playwright itself is replaced by small fakes; no browser is launched.
"""

import asyncio

import pytest

import bulkshot.capture.session as session_module
from bulkshot.capture.options import resolve_options
from bulkshot.capture.session import (
    CONTAINER_LAUNCH_ARGS,
    CaptureSession,
    cookies_for_page,
    scroll_until_settled,
)
from bulkshot.core.errors import LaunchError, SessionLostError


def _state(before, after, viewport=1000, scroll_height=10000):
    return {"before": before, "after": after, "viewport": viewport, "scrollHeight": scroll_height}


class TestScrollUntilSettled:
    """Tests for scroll_until_settled function."""

    def test_short_page_stops_after_one_tick(self, fake_page):
        """Test a page that already fits the viewport."""
        page = fake_page(scroll_states=[_state(0, 0, 1080, 1080)])
        assert asyncio.run(scroll_until_settled(page, 300)) == 1

    def test_stops_at_bottom(self, fake_page):
        """Test that scrolling stops once the viewport reaches the end."""
        page = fake_page(scroll_states=[
            _state(0, 1000, scroll_height=4000),
            _state(1000, 2000, scroll_height=4000),
            _state(2000, 3000, scroll_height=4000),
            _state(3000, 4000, scroll_height=4000),
        ])
        assert asyncio.run(scroll_until_settled(page, 300)) == 3

    def test_stops_when_stalled(self, fake_page):
        """Test that a scroll position that no longer moves ends the loop."""
        page = fake_page(scroll_states=[
            _state(0, 1000),
            _state(1000, 1000),
            _state(1000, 2000),
        ])
        assert asyncio.run(scroll_until_settled(page, 300)) == 2

    def test_unscrolled_page_is_not_stalled(self, fake_page):
        """Test that position 0 -> 0 on a tall page is not treated as stalled."""
        page = fake_page(scroll_states=[
            _state(0, 0, scroll_height=50000),
            _state(0, 1000, scroll_height=50000),
            _state(1000, 1000, scroll_height=50000),
        ])
        assert asyncio.run(scroll_until_settled(page, 300)) == 3

    def test_tick_cap(self, fake_page):
        """Test that infinite pages stop at max_ticks."""
        states = [_state(i * 1000, (i + 1) * 1000, scroll_height=10 ** 9) for i in range(10)]
        page = fake_page(scroll_states=states)
        assert asyncio.run(scroll_until_settled(page, 10, max_ticks=4)) == 4

    def test_waits_before_each_tick(self, fake_page):
        """Test that every tick waits the configured interval."""
        page = fake_page(scroll_states=[_state(0, 1000), _state(1000, 1000)])
        asyncio.run(scroll_until_settled(page, 250))
        assert [c[1][0] for c in page.called("wait_for_timeout")] == [250, 250]


class TestCookiesForPage:
    """Tests for cookies_for_page function."""

    def test_bare_cookie_bound_to_url(self):
        """Test that a cookie without url or domain gets the page URL."""
        out = cookies_for_page([{"name": "sid", "value": "1"}], "https://a.com/x")
        assert out == [{"name": "sid", "value": "1", "url": "https://a.com/x"}]

    def test_domain_cookie_gets_root_path(self):
        """Test that a domain cookie without a path gets '/'."""
        out = cookies_for_page([{"name": "sid", "value": "1", "domain": ".a.com"}], "https://a.com/x")
        assert out[0]["path"] == "/"
        assert "url" not in out[0]

    def test_explicit_fields_kept(self):
        """Test that complete cookies are passed through."""
        cookie = {"name": "sid", "value": "1", "domain": "a.com", "path": "/app"}
        assert cookies_for_page([cookie], "https://a.com/x") == [cookie]

    def test_input_not_mutated(self):
        """Test that the configured cookies are left untouched."""
        cookie = {"name": "sid", "value": "1"}
        cookies_for_page([cookie], "https://a.com")
        assert cookie == {"name": "sid", "value": "1"}


# ============================================================================
# Fake Playwright driver
# ============================================================================

class FakeBrowserContext:
    def __init__(self, kwargs, page_factory, fail_new_page=None):
        self.kwargs = kwargs
        self.cookies = []
        self.closed = False
        self._page_factory = page_factory
        self._fail_new_page = fail_new_page

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def new_page(self):
        if self._fail_new_page:
            raise self._fail_new_page
        page = self._page_factory()
        page.context = self
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory):
        self.handlers = {}
        self.connected = True
        self.contexts = []
        self.close_calls = 0
        self.fail_new_page = None
        self._page_factory = page_factory

    def on(self, event, handler):
        self.handlers[event] = handler

    def is_connected(self):
        return self.connected

    async def new_context(self, **kwargs):
        ctx = FakeBrowserContext(kwargs, self._page_factory, self.fail_new_page)
        self.contexts.append(ctx)
        return ctx

    async def close(self):
        self.close_calls += 1
        self.connected = False


class FakeChromium:
    def __init__(self, browser, launch_error=None):
        self.browser = browser
        self.launch_error = launch_error
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        if self.launch_error:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stop_calls = 0

    async def stop(self):
        self.stop_calls += 1


class FakeDriverManager:
    def __init__(self, playwright):
        self._playwright = playwright

    async def start(self):
        return self._playwright


@pytest.fixture
def fake_driver(monkeypatch, fake_page):
    """Patch async_playwright() and return the fake driver objects."""
    browser = FakeBrowser(page_factory=fake_page)
    chromium = FakeChromium(browser)
    playwright = FakePlaywright(chromium)
    monkeypatch.setattr(session_module, "async_playwright", lambda: FakeDriverManager(playwright))
    return playwright


class TestCaptureSession:
    """Tests for CaptureSession class."""

    def test_start_launches_once(self, fake_driver):
        """Test launch arguments and liveness after start."""
        session = CaptureSession(resolve_options({"headless": False}))
        asyncio.run(session.start())
        assert fake_driver.chromium.launch_kwargs == {"headless": False, "args": CONTAINER_LAUNCH_ARGS}
        assert session.is_alive
        assert "disconnected" in fake_driver.chromium.browser.handlers

    def test_launch_failure(self, fake_driver, isolated_error_log):
        """Test that a launch failure is a LaunchError and the driver is stopped."""
        fake_driver.chromium.launch_error = RuntimeError("Executable doesn't exist")
        session = CaptureSession(resolve_options())
        with pytest.raises(LaunchError, match="Executable doesn't exist"):
            asyncio.run(session.start())
        assert fake_driver.stop_calls == 1
        assert not session.is_alive
        record = isolated_error_log.read_errors()[-1]
        assert (record["component"], record["stage"], record["error_type"]) == ("session", "launch", "launch_error")
        assert record["severity"] == "critical"

    def test_open_page_configures_context(self, fake_driver):
        """Test viewport, scale, user agent, credentials and cookies."""
        opts = resolve_options({
            "width": 800,
            "height": 600,
            "deviceScaleFactor": 2,
            "userAgent": "bulkshot-test",
            "authUrls": {"secure.a.com": {"username": "u", "password": "p"}},
            "cookies": {"secure.a.com": [{"name": "sid", "value": "1"}]},
        })

        async def scenario():
            session = CaptureSession(opts)
            await session.start()
            page = await session.open_page("https://secure.a.com/x")
            return page

        page = asyncio.run(scenario())
        ctx = page.context
        assert ctx.kwargs == {
            "viewport": {"width": 800, "height": 600},
            "device_scale_factor": 2.0,
            "user_agent": "bulkshot-test",
            "http_credentials": {"username": "u", "password": "p"},
        }
        assert ctx.cookies == [{"name": "sid", "value": "1", "url": "https://secure.a.com/x"}]

    def test_other_host_gets_no_credentials(self, fake_driver):
        """Test that auth and cookies are scoped to their hostname."""
        opts = resolve_options({
            "authUrls": {"secure.a.com": {"username": "u", "password": "p"}},
            "cookies": {"secure.a.com": [{"name": "sid", "value": "1"}]},
        })

        async def scenario():
            session = CaptureSession(opts)
            await session.start()
            return await session.open_page("https://a.com/")

        page = asyncio.run(scenario())
        assert "http_credentials" not in page.context.kwargs
        assert page.context.cookies == []

    def test_each_page_gets_own_context(self, fake_driver):
        """Test per-URL isolation."""
        async def scenario():
            session = CaptureSession(resolve_options())
            await session.start()
            first = await session.open_page("https://a.com")
            await session.close_page(first)
            second = await session.open_page("https://b.com")
            return first, second

        first, second = asyncio.run(scenario())
        assert first.context is not second.context
        assert first.context.closed
        assert not second.context.closed

    def test_failed_page_setup_closes_context(self, fake_driver):
        """Test that a context is not leaked when the page cannot be created."""
        browser = fake_driver.chromium.browser
        browser.fail_new_page = RuntimeError("boom")

        async def scenario():
            session = CaptureSession(resolve_options())
            await session.start()
            await session.open_page("https://a.com")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(scenario())
        assert browser.contexts[0].closed

    def test_disconnect_marks_session_dead(self, fake_driver):
        """Test that a browser crash is observed by is_alive and open_page."""
        async def scenario():
            session = CaptureSession(resolve_options())
            await session.start()
            fake_driver.chromium.browser.handlers["disconnected"]()
            assert not session.is_alive
            await session.open_page("https://a.com")

        with pytest.raises(SessionLostError):
            asyncio.run(scenario())

    def test_shutdown_idempotent(self, fake_driver):
        """Test that shutdown closes the browser and driver exactly once."""
        async def scenario():
            session = CaptureSession(resolve_options())
            await session.start()
            await session.shutdown()
            await session.shutdown()
            return session

        session = asyncio.run(scenario())
        assert fake_driver.chromium.browser.close_calls == 1
        assert fake_driver.stop_calls == 1
        assert not session.is_alive

    def test_context_manager(self, fake_driver):
        """Test async with starts and shuts down the session."""
        async def scenario():
            async with CaptureSession(resolve_options()) as session:
                assert session.is_alive
            return session

        session = asyncio.run(scenario())
        assert not session.is_alive
        assert fake_driver.stop_calls == 1
