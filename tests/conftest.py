"""Shared fixtures: Playwright stand-ins and settings isolation."""

import contextlib
import socket
import threading
import time
from typing import List, Optional

import pytest
import uvicorn

from cas_e2e import mock_cas
from cas_e2e.settings import settings


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    async def count(self) -> int:
        return 1 if self.selector in self.page.present else 0


class FakeContext:
    def __init__(self):
        self.default_timeout: Optional[int] = None
        self.cookie_jar: List[dict] = []
        self.options: dict = {}
        self.pages: List["FakePage"] = []

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def new_page(self) -> "FakePage":
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def cookies(self) -> List[dict]:
        return list(self.cookie_jar)


class FakeResponse:
    def __init__(self, status: int = 200):
        self.status = status


class FakePage:
    """Records calls; ``after_submit`` is the URL the page lands on after Enter."""

    def __init__(self, context: Optional[FakeContext] = None):
        self.context = context or FakeContext()
        self.url = "about:blank"
        self.calls: List[tuple] = []
        self.present: set = set()
        self.goto_errors: List[Exception] = []
        self.after_submit: Optional[str] = None
        self.errors_after_submit = False

    async def goto(self, url: str, wait_until: str = "load"):
        self.calls.append(("goto", url, wait_until))
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = url
        return FakeResponse()

    async def fill(self, selector: str, value: str) -> None:
        self.calls.append(("fill", selector, value))

    async def press(self, selector: str, key: str) -> None:
        self.calls.append(("press", selector, key))
        if self.after_submit:
            self.url = self.after_submit
        if self.errors_after_submit:
            self.present.add("#loginErrorsPanel")

    @contextlib.asynccontextmanager
    async def expect_navigation(self):
        self.calls.append(("expect_navigation",))
        yield

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        self.calls.append(("screenshot", path, full_page))


class FakeBrowser:
    def __init__(self):
        self.contexts: List[FakeContext] = []
        self.closed = False

    async def new_context(self, **options) -> FakeContext:
        context = FakeContext()
        context.options = options
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture(autouse=True)
def restore_settings():
    saved = settings.model_dump()
    yield
    for key, value in saved.items():
        setattr(settings, key, value)


@pytest.fixture(autouse=True)
def reset_mock_cas():
    mock_cas.ticket_granting_tickets.clear()
    mock_cas.service_tickets.clear()
    yield


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def mock_cas_server():
    """Run the mock CAS app under uvicorn in a thread; yields its base URL."""
    port = _free_port()
    server = uvicorn.Server(uvicorn.Config(mock_cas.app, host="127.0.0.1", port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline:
            raise RuntimeError("mock CAS server did not start")
        time.sleep(0.05)

    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=5)
