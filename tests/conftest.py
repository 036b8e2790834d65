# tests/conftest.py
"""
Small stand-ins for Playwright objects.

``FakePage`` / ``FakeElement`` answer ``evaluate`` calls from a mapping of
script -> handler and record every call, so tests can assert both results
and the order in which scripts ran.  No test launches a browser.
"""

from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError


class FakeElement:
    def __init__(
        self,
        handlers: Optional[Dict[str, Callable]] = None,
        inner_html: str = "",
        png: bytes = b"\x89PNG-element",
        screenshot_error: Optional[Exception] = None,
    ):
        self.handlers = handlers or {}
        self._inner_html = inner_html
        self.png = png
        self.screenshot_error = screenshot_error
        self.calls: List[tuple] = []

    async def evaluate(self, script: str, arg: Any = None):
        self.calls.append((script, arg))
        handler = self.handlers.get(script)
        return handler(arg) if handler else None

    async def evaluate_handle(self, script: str, arg: Any = None):
        self.calls.append((script, arg))
        handler = self.handlers.get(script)
        return handler(arg) if handler else FakeHandle(None)

    async def inner_html(self) -> str:
        return self._inner_html

    async def scroll_into_view_if_needed(self) -> None:
        return None

    async def screenshot(self, **kwargs) -> bytes:
        self.calls.append(("screenshot", kwargs))
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return self.png


class FakeHandle:
    def __init__(self, element: Optional[FakeElement]):
        self._element = element

    def as_element(self) -> Optional[FakeElement]:
        return self._element


class FakeResponse:
    def __init__(self, status: int = 200):
        self.status = status


class FakePage:
    def __init__(
        self,
        handlers: Optional[Dict[str, Callable]] = None,
        html: str = "<html><body></body></html>",
        title: str = "",
        url: str = "https://example.com/story",
        goto_error: Optional[Exception] = None,
        selectors: Optional[Dict[str, Any]] = None,
    ):
        self.handlers = handlers or {}
        self.html = html
        self._title = title
        self.url = url
        self.goto_error = goto_error
        self.selectors = selectors or {}
        self.calls: List[tuple] = []

    async def evaluate(self, script: str, arg: Any = None):
        self.calls.append(("evaluate", script, arg))
        handler = self.handlers.get(script)
        return handler(arg) if handler else None

    async def query_selector(self, selector: str):
        self.calls.append(("query_selector", selector))
        return self.selectors.get(selector)

    async def content(self) -> str:
        self.calls.append(("content",))
        return self.html

    async def title(self) -> str:
        return self._title

    async def goto(self, url: str, **kwargs):
        self.calls.append(("goto", url, kwargs))
        if self.goto_error is not None:
            raise self.goto_error
        return FakeResponse()

    async def screenshot(self, **kwargs) -> bytes:
        self.calls.append(("screenshot", kwargs))
        return b"\x89PNG-full"

    async def add_init_script(self, script):
        self.calls.append(("add_init_script", script))

    def evaluated(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "evaluate"]


class FakePageContext:
    def __init__(self, page: FakePage):
        self.page = page
        self.context = None
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """Hands out one prepared page; records whether a page was ever opened."""

    def __init__(self, page: Optional[FakePage] = None):
        self.page = page or FakePage()
        self.acquired = 0
        self.contexts: List[FakePageContext] = []
        self.context_options: List[Optional[dict]] = []

    @asynccontextmanager
    async def acquire_page(self, context_options=None):
        self.acquired += 1
        self.context_options.append(context_options)
        page_ctx = FakePageContext(self.page)
        self.contexts.append(page_ctx)
        try:
            yield page_ctx
        finally:
            await page_ctx.close()


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def playwright_error() -> PlaywrightError:
    return PlaywrightError("Target page, context or browser has been closed")
