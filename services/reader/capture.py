# services/reader/capture.py
import asyncio
import base64
from typing import Any, Awaitable, Callable, List, Optional
from urllib.parse import urljoin

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from prometheus_client import Counter

from core.exceptions import CaptureFailure
from models.article import CapturedImage, ImageDescriptor

CAPTURE_FAILURES = Counter('reader_capture_failures_total', 'Per-image screenshots that failed')

WAIT_FOR_IMAGES_JS = """
(timeoutMs) => {
    const pending = Array.from(document.images)
        .filter(img => !img.complete)
        .map(img => new Promise(resolve => {
            img.addEventListener('load', resolve, { once: true });
            img.addEventListener('error', resolve, { once: true });
        }));
    const timeout = new Promise(resolve => setTimeout(resolve, timeoutMs));
    return Promise.race([Promise.all(pending), timeout]).then(() => pending.length);
}
"""

FIND_IMAGE_BY_SOURCE_JS = """
(root, src) => Array.from(root.querySelectorAll('img')).find(img => img.getAttribute('src') === src) || null
"""


class Capturer:
    """Issues the final screenshots once images have had a chance to load."""

    def __init__(
        self,
        settle_delay: float = 2.0,
        image_load_timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settle_delay = settle_delay
        self.image_load_timeout = image_load_timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings) -> "Capturer":
        return cls(
            settle_delay=settings.CAPTURE_SETTLE_DELAY,
            image_load_timeout=settings.IMAGE_LOAD_TIMEOUT,
        )

    async def wait_for_images(self, page: Any) -> None:
        pending = await page.evaluate(WAIT_FOR_IMAGES_JS, int(self.image_load_timeout * 1000))
        if pending:
            logger.debug(f"Waited on {pending} image(s) still loading")
        await self._sleep(self.settle_delay)

    async def capture_full_page(self, page: Any) -> bytes:
        await self.wait_for_images(page)
        return await page.screenshot(full_page=True, type="png")

    async def capture_image(self, root: Any, descriptor: ImageDescriptor) -> bytes:
        """Screenshot the ``<img>`` under ``root`` whose ``src`` is ``descriptor.src``."""
        try:
            handle = await root.evaluate_handle(FIND_IMAGE_BY_SOURCE_JS, descriptor.src)
            element = handle.as_element()
            if element is None:
                raise CaptureFailure(f"Image {descriptor.index} is no longer in the document")
            await element.scroll_into_view_if_needed()
            return await element.screenshot(type="png")
        except PlaywrightError as exc:
            raise CaptureFailure(f"Screenshot of image {descriptor.index} failed: {exc}") from exc

    async def capture_images(
        self,
        root: Any,
        descriptors: List[ImageDescriptor],
        base_url: Optional[str] = None,
    ) -> List[CapturedImage]:
        """
        Capture each image in turn; a failed image is logged and skipped.
        Call ``wait_for_images`` first.
        """
        captured: List[CapturedImage] = []
        for descriptor in descriptors:
            try:
                png = await self.capture_image(root, descriptor)
            except CaptureFailure as exc:
                CAPTURE_FAILURES.inc()
                logger.warning(f"Skipping image {descriptor.index} ({descriptor.src}): {exc.message}")
                continue
            captured.append(
                CapturedImage(
                    index=descriptor.index,
                    src=urljoin(base_url, descriptor.src) if base_url else descriptor.src,
                    alt=descriptor.alt,
                    width=descriptor.width,
                    height=descriptor.height,
                    data=base64.b64encode(png).decode("utf-8"),
                )
            )
        return captured
