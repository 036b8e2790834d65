# services/reader/pipeline.py
"""
The reader pipeline: one request, one page, strictly ordered steps.

    stealth -> navigate -> lazy-load -> noise -> locate -> (render | select) -> capture

The page context is owned by ``BrowserSession.acquire_page()`` and is
closed on every exit path before an error reaches the HTTP layer.
"""

from typing import Any, List, Optional, Tuple
from urllib.parse import urlparse

from loguru import logger
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from prometheus_client import Counter, Histogram

from core.exceptions import (
    BrowserFailure,
    CaptureFailure,
    ExtractionMiss,
    InvalidRequest,
    ReaderServiceException,
    UpstreamLoadFailure,
)
from models.article import CapturedImage, ExtractionResult, ImageDescriptor, ScreenshotResult
from services.browser.session import BrowserSession, PageContext
from services.browser.stealth import StealthConfigurator
from services.reader.capture import Capturer
from services.reader.images import ImageSelector
from services.reader.lazy_load import LazyLoadTrigger
from services.reader.locator import ArticleLocator
from services.reader.noise import NoiseSuppressor
from services.reader.renderer import ReaderRenderer

PIPELINE_REQUESTS = Counter('reader_requests_total', 'Pipeline runs by operation', ['operation'])
PIPELINE_ERRORS = Counter('reader_errors_total', 'Pipeline failures by error code', ['code'])
PIPELINE_DURATION = Histogram('reader_pipeline_seconds', 'End-to-end pipeline time', ['operation'])
NAVIGATION_DURATION = Histogram('reader_navigation_seconds', 'Time spent in page.goto')


def validate_url(url: Optional[str]) -> str:
    """Return the stripped URL or raise ``InvalidRequest``."""
    if url is None or not url.strip():
        raise InvalidRequest("URL parameter is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRequest(f"Invalid URL: {url}", details={"url": url})
    return url


class ReaderPipeline:
    def __init__(
        self,
        session: BrowserSession,
        stealth: StealthConfigurator,
        lazy_loader: LazyLoadTrigger,
        noise: NoiseSuppressor,
        locator: ArticleLocator,
        renderer: ReaderRenderer,
        selector: ImageSelector,
        capturer: Capturer,
        navigation_timeout: float = 60.0,
        wait_until: str = "networkidle",
    ):
        self.session = session
        self.stealth = stealth
        self.lazy_loader = lazy_loader
        self.noise = noise
        self.locator = locator
        self.renderer = renderer
        self.selector = selector
        self.capturer = capturer
        self.navigation_timeout = navigation_timeout
        self.wait_until = wait_until

    @classmethod
    def from_settings(cls, session: BrowserSession, settings) -> "ReaderPipeline":
        return cls(
            session=session,
            stealth=StealthConfigurator(profile_name=settings.STEALTH_PROFILE),
            lazy_loader=LazyLoadTrigger.from_settings(settings),
            noise=NoiseSuppressor(),
            locator=ArticleLocator.from_settings(settings),
            renderer=ReaderRenderer.from_settings(settings),
            selector=ImageSelector(settings.MIN_IMAGE_WIDTH, settings.MIN_IMAGE_HEIGHT),
            capturer=Capturer.from_settings(settings),
            navigation_timeout=settings.NAVIGATION_TIMEOUT,
            wait_until=settings.WAIT_UNTIL,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def screenshot(self, url: Optional[str]) -> ScreenshotResult:
        """
        Full-page PNG of the reader view.  Not finding an article is not an
        error: the page is captured as it is.
        """
        url = validate_url(url)
        PIPELINE_REQUESTS.labels(operation="screenshot").inc()
        with PIPELINE_DURATION.labels(operation="screenshot").time():
            try:
                async with self.session.acquire_page(self.stealth.context_options()) as page_ctx:
                    await self._prepare(page_ctx, url)
                    page = page_ctx.page

                    result, applied = await self._reader_view(page, url)
                    try:
                        png = await self.capturer.capture_full_page(page)
                    except PlaywrightError as exc:
                        raise BrowserFailure(f"Screenshot failed: {exc}") from exc
            except ReaderServiceException as exc:
                PIPELINE_ERRORS.labels(code=exc.code).inc()
                raise

        logger.info(f"Captured {url} ({len(png)} bytes, reader view {'applied' if applied else 'not applied'})")
        return ScreenshotResult(png=png, reader_applied=applied, strategy=result.strategy)

    async def screenshot_images(self, url: Optional[str]) -> List[CapturedImage]:
        """Screenshots of every content image in the article, in DOM order."""
        url = validate_url(url)
        PIPELINE_REQUESTS.labels(operation="images").inc()
        with PIPELINE_DURATION.labels(operation="images").time():
            try:
                async with self.session.acquire_page(self.stealth.context_options()) as page_ctx:
                    root, descriptors = await self._content_images(page_ctx, url)
                    try:
                        captured = await self.capturer.capture_images(
                            root, descriptors, base_url=page_ctx.page.url
                        )
                    except PlaywrightError as exc:
                        raise BrowserFailure(f"Image capture failed: {exc}") from exc
                    if not captured:
                        raise CaptureFailure(
                            f"None of the {len(descriptors)} content image(s) could be captured"
                        )
            except ReaderServiceException as exc:
                PIPELINE_ERRORS.labels(code=exc.code).inc()
                raise

        if len(captured) < len(descriptors):
            logger.warning(f"Captured {len(captured)} of {len(descriptors)} image(s) from {url}")
        return captured

    async def screenshot_image(self, url: Optional[str], index: int) -> CapturedImage:
        """A single content image, addressed by its post-filter index."""
        url = validate_url(url)
        if index < 0:
            raise InvalidRequest(f"Image index must be >= 0, got {index}")
        PIPELINE_REQUESTS.labels(operation="image").inc()
        with PIPELINE_DURATION.labels(operation="image").time():
            try:
                async with self.session.acquire_page(self.stealth.context_options()) as page_ctx:
                    root, descriptors = await self._content_images(page_ctx, url)
                    if index >= len(descriptors):
                        raise ExtractionMiss(
                            f"Image {index} not found ({len(descriptors)} content image(s))",
                            details={"totalImages": len(descriptors)},
                        )
                    captured = await self.capturer.capture_images(
                        root, [descriptors[index]], base_url=page_ctx.page.url
                    )
                    if not captured:
                        raise CaptureFailure(f"Image {index} could not be captured")
            except ReaderServiceException as exc:
                PIPELINE_ERRORS.labels(code=exc.code).inc()
                raise
        return captured[0]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    async def _prepare(self, page_ctx: PageContext, url: str) -> None:
        """Stealth, navigation, lazy-load scroll and noise removal, in that order."""
        page = page_ctx.page
        try:
            await self.stealth.configure(page_ctx)
        except PlaywrightError as exc:
            raise BrowserFailure(f"Failed to configure page: {exc}") from exc

        await self._navigate(page, url)

        try:
            await self.lazy_loader.trigger(page)
            await self.noise.suppress(page)
        except PlaywrightError as exc:
            raise BrowserFailure(f"Failed to prepare page {url}: {exc}") from exc

    async def _navigate(self, page, url: str) -> None:
        logger.info(f"Navigating to {url}")
        try:
            with NAVIGATION_DURATION.time():
                response = await page.goto(
                    url,
                    wait_until=self.wait_until,
                    timeout=self.navigation_timeout * 1000,
                )
        except PlaywrightTimeoutError as exc:
            raise UpstreamLoadFailure(
                f"Timed out after {self.navigation_timeout:.0f}s loading {url}",
                details={"url": url},
            ) from exc
        except PlaywrightError as exc:
            raise UpstreamLoadFailure(f"Failed to load {url}: {exc}", details={"url": url}) from exc

        if response is not None and response.status >= 400:
            logger.warning(f"{url} answered HTTP {response.status}; continuing with rendered page")

    async def _reader_view(self, page, url: str) -> Tuple[ExtractionResult, bool]:
        """Locate and render; any failure here degrades to the page as-is."""
        try:
            result = await self.locator.locate(page)
            if not result.found:
                logger.warning(f"No article found on {url}; capturing full page")
                return result, False
            applied = await self.renderer.render(page, result)
        except PlaywrightError as exc:
            logger.warning(f"Reader view failed for {url}; capturing full page: {exc}")
            return ExtractionResult.not_found(), False
        return result, applied

    async def _content_images(
        self, page_ctx: PageContext, url: str
    ) -> Tuple[Any, List[ImageDescriptor]]:
        await self._prepare(page_ctx, url)
        page = page_ctx.page
        try:
            result = await self.locator.locate(page)
            root = result.element
            if root is None:
                raise ExtractionMiss(f"No article found on {url}", details={"url": url})

            await self.selector.resolve_lazy_sources(root)
            await self.capturer.wait_for_images(page)
            descriptors = await self.selector.select(root)
        except PlaywrightError as exc:
            raise BrowserFailure(f"Image selection failed for {url}: {exc}") from exc

        if not descriptors:
            raise ExtractionMiss(f"No content images found on {url}", details={"url": url})
        return root, descriptors
