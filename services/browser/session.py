# services/browser/session.py
"""
One long-lived headless Chromium shared by every request.

The raw Playwright ``Browser`` never leaves this module: request code only
sees ``PageContext`` objects handed out by ``BrowserSession.acquire_page()``,
each one an isolated browser context with a single tab that is closed on
every exit path.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from loguru import logger
from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright
from prometheus_client import Counter, Gauge
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from core.exceptions import BrowserFailure, BrowserFatal, ServiceBusy

# Chromium launch flags.
BROWSER_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
    "--window-size=1920,1080",
]

OPEN_PAGES = Gauge('reader_open_pages', 'Page contexts currently open')
PAGES_OPENED_TOTAL = Counter('reader_pages_opened_total', 'Total number of page contexts opened')
BROWSER_LAUNCH_FAILURES = Counter('reader_browser_launch_failures_total', 'Failed browser launch attempts')


class PageContext:
    """An isolated tab: its own browser context (cookies, storage, history) and page."""

    def __init__(self, context: Any, page: Any):
        self.context = context
        self.page = page
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.context.close()
        except PlaywrightError as exc:
            # the browser may already be gone; nothing left to release
            logger.warning(f"Error closing page context: {exc}")


class BrowserSession:
    """
    Owns the browser process for the lifetime of the service.

    * ``start()`` launches Chromium (retried ``launch_attempts`` times) and
      raises ``BrowserFatal`` if it never comes up.
    * ``acquire_page()`` is an async context manager yielding a fresh
      ``PageContext``; at most ``max_pages`` are open at once, further
      callers wait up to ``admission_timeout`` seconds and are then
      rejected with ``ServiceBusy``.
    * ``shutdown()`` closes the browser exactly once.
    """

    def __init__(
        self,
        max_pages: int = 4,
        admission_timeout: float = 30.0,
        launch_attempts: int = 3,
        headless: bool = True,
        args: Optional[List[str]] = None,
    ):
        self.max_pages = max_pages
        self.admission_timeout = admission_timeout
        self.launch_attempts = launch_attempts
        self.headless = headless
        self.args = list(args or BROWSER_ARGS)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._semaphore = asyncio.Semaphore(max_pages)
        self._lock = asyncio.Lock()
        self._shutdown = False

    @classmethod
    def from_settings(cls, settings) -> "BrowserSession":
        return cls(
            max_pages=settings.MAX_CONCURRENT_PAGES,
            admission_timeout=settings.ADMISSION_TIMEOUT,
            launch_attempts=settings.BROWSER_LAUNCH_ATTEMPTS,
        )

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        """Launch the shared browser. Failure here is fatal for the process."""
        async with self._lock:
            if self._browser is not None:
                return
            logger.info("Launching headless Chromium")
            try:
                self._playwright = await async_playwright().start()
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.launch_attempts),
                    wait=wait_exponential(multiplier=1, min=1, max=5),
                    reraise=True,
                ):
                    with attempt:
                        try:
                            self._browser = await self._playwright.chromium.launch(
                                headless=self.headless,
                                args=self.args,
                            )
                        except PlaywrightError:
                            BROWSER_LAUNCH_FAILURES.inc()
                            raise
            except (PlaywrightError, RetryError, OSError) as exc:
                logger.error(f"Failed to launch browser: {exc}")
                await self._stop_playwright()
                raise BrowserFatal(f"Failed to launch browser: {exc}") from exc
            logger.info("Chromium launched successfully")

    @asynccontextmanager
    async def acquire_page(
        self, context_options: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[PageContext]:
        """
        Open an isolated tab; it is always closed when the block exits.
        ``context_options`` are passed to ``Browser.new_context()``.
        """
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self.admission_timeout)
        except asyncio.TimeoutError as exc:
            raise ServiceBusy(
                f"No page slot became available within {self.admission_timeout:.0f}s"
            ) from exc

        page_ctx: Optional[PageContext] = None
        try:
            if self._shutdown or self._browser is None:
                raise BrowserFailure("Browser is not running")
            try:
                context = await self._browser.new_context(**(context_options or {}))
            except PlaywrightError as exc:
                logger.error(f"Unable to open browser context: {exc}")
                raise BrowserFailure(f"Unable to open page: {exc}") from exc

            page_ctx = PageContext(context, None)
            PAGES_OPENED_TOTAL.inc()
            OPEN_PAGES.inc()
            try:
                page_ctx.page = await context.new_page()
            except PlaywrightError as exc:
                logger.error(f"Unable to open page: {exc}")
                raise BrowserFailure(f"Unable to open page: {exc}") from exc

            yield page_ctx
        finally:
            if page_ctx is not None:
                await page_ctx.close()
                OPEN_PAGES.dec()
            self._semaphore.release()

    async def shutdown(self) -> None:
        """Close the browser. Safe to call more than once; only the first call acts."""
        async with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            logger.info("Shutting down browser session")
            if self._browser is not None:
                try:
                    await self._browser.close()
                    logger.info("Browser closed")
                except PlaywrightError as exc:
                    logger.warning(f"Error closing browser: {exc}")
                self._browser = None
            await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as exc:
                logger.warning(f"Error stopping Playwright driver: {exc}")
            self._playwright = None
