"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all tests in the test suite. No test launches a real browser: the
capture pipeline and orchestrator run against the fake page/session
objects defined here.
"""

import pytest
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from bulkshot.core.config import reset_config
from bulkshot.core.error_logger import ErrorLogger, set_error_logger
from bulkshot.core.errors import SessionLostError


# ============================================================================
# Isolation
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_error_log(tmp_path: Path):
    """Send structured error records to a per-test directory."""
    error_logger = ErrorLogger(log_dir=tmp_path / "errors")
    set_error_logger(error_logger)
    yield error_logger
    set_error_logger(None)


@pytest.fixture(autouse=True)
def fresh_config():
    """Drop the cached application config around each test."""
    reset_config()
    yield
    reset_config()


# ============================================================================
# Paths and Directories
# ============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def test_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def url_file(tmp_path: Path) -> Callable[[str], Path]:
    """Write a URL list file and return its path."""
    def _write(content: str, name: str = "urls.txt", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding=encoding)
        return path

    return _write


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_url_list() -> str:
    """Return a URL list with comments, blanks and one bad line."""
    return "\n".join([
        "https://example.com/a/b",
        "not a url",
        "# comment",
        "",
        "example.org",
    ])


# ============================================================================
# Fake Browser Objects
# ============================================================================

class FakeContext:
    def __init__(self):
        self.closed = False
        self.cookies: List[Dict[str, Any]] = []

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def close(self):
        self.closed = True


class FakePage:
    """
    Stand-in for playwright.async_api.Page.

    `fail_on` maps a method name (goto, screenshot, pdf, ...) to the
    exception it raises. `scroll_states` are returned by evaluate() in
    order; after they run out the page reports it is at the bottom.
    `hooks` maps a method name to a callable run before that method.
    """

    def __init__(
        self,
        fail_on: Optional[Dict[str, BaseException]] = None,
        scroll_states: Optional[List[Dict[str, int]]] = None,
        hooks: Optional[Dict[str, Callable[[], None]]] = None,
    ):
        self.url = "about:blank"
        self.context = FakeContext()
        self.calls: List[tuple] = []
        self.fail_on = fail_on or {}
        self.scroll_states = list(scroll_states or [])
        self.hooks = hooks or {}

    def _record(self, name: str, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.hooks:
            self.hooks[name]()
        if name in self.fail_on:
            raise self.fail_on[name]

    def called(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def goto(self, url, wait_until=None, timeout=None):
        self._record("goto", url, wait_until=wait_until, timeout=timeout)
        self.url = url

    async def wait_for_load_state(self, state, timeout=None):
        self._record("wait_for_load_state", state, timeout=timeout)

    async def wait_for_timeout(self, ms):
        self._record("wait_for_timeout", ms)

    async def evaluate(self, script):
        self._record("evaluate", script)
        if self.scroll_states:
            return self.scroll_states.pop(0)
        return {"before": 0, "after": 0, "viewport": 1080, "scrollHeight": 1080}

    async def screenshot(self, path, full_page=False, type="png", quality=None):
        self._record("screenshot", path=path, full_page=full_page, type=type, quality=quality)
        Path(path).write_bytes(b"\x89PNG")

    async def pdf(self, path, **kwargs):
        self._record("pdf", path=path, **kwargs)
        Path(path).write_bytes(b"%PDF-1.4")


class FakeSession:
    """
    Stand-in for CaptureSession.

    `page_config` maps a URL to FakePage keyword arguments. A URL listed
    in `kill_on` takes the browser down while it is being captured.
    """

    def __init__(
        self,
        options,
        page_config: Optional[Dict[str, Dict[str, Any]]] = None,
        kill_on: Optional[List[str]] = None,
    ):
        self.options = options
        self.page_config = page_config or {}
        self.kill_on = set(kill_on or ())
        self.started = 0
        self.shutdowns = 0
        self.dead = False
        self.pages: List[FakePage] = []
        self.closed_pages: List[FakePage] = []
        self.opened_urls: List[str] = []

    @property
    def is_alive(self) -> bool:
        return self.started > 0 and not self.dead and self.shutdowns == 0

    async def start(self):
        self.started += 1
        return self

    async def open_page(self, url):
        if not self.is_alive:
            raise SessionLostError("Browser is not running")
        self.opened_urls.append(url)
        config = dict(self.page_config.get(url, {}))
        if url in self.kill_on:
            config.setdefault("hooks", {})["goto"] = self._die
            config.setdefault("fail_on", {})["goto"] = RuntimeError("Target closed")
        page = FakePage(**config)
        self.pages.append(page)
        return page

    def _die(self):
        self.dead = True

    async def close_page(self, page):
        self.closed_pages.append(page)
        await page.context.close()

    async def scroll_until_settled(self, page, tick_interval_ms, max_ticks=100):
        state = await page.evaluate("scroll")
        return 1 if state else 0

    async def shutdown(self):
        self.shutdowns += 1


@pytest.fixture
def fake_page() -> Callable[..., FakePage]:
    """Factory for FakePage objects."""
    return FakePage


@pytest.fixture
def fake_session_factory():
    """
    Build a session_factory for run_batch that records created sessions.

    Usage:
        factory = fake_session_factory(page_config={...}, kill_on=[...])
        summary = asyncio.run(run_batch(urls, opts, session_factory=factory))
        factory.sessions[0].shutdowns == 1
    """
    def _make(page_config=None, kill_on=None):
        def factory(options):
            session = FakeSession(options, page_config=page_config, kill_on=kill_on)
            factory.sessions.append(session)
            return session

        factory.sessions = []
        return factory

    return _make


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
