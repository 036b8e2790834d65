# services/reader/lazy_load.py
"""
Forces lazy-loaded content to materialise by scrolling the page the way a
reader would.

The scroll is an explicit bounded loop: each tick scrolls one step and
re-reads ``scrollHeight`` (pages grow while they load), and the loop ends
once the accumulated distance reaches that height or ``max_steps`` ticks
have run.  ``sleep`` is injectable so tests can drive it with a fake clock.
"""

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

Sleep = Callable[[float], Awaitable[None]]

SCROLL_STEP_JS = """
(step) => {
    window.scrollBy(0, step);
    return Math.max(
        document.body ? document.body.scrollHeight : 0,
        document.documentElement ? document.documentElement.scrollHeight : 0
    );
}
"""

SCROLL_TOP_JS = "() => window.scrollTo(0, 0)"


class LazyLoadTrigger:
    def __init__(
        self,
        step_px: int = 100,
        interval: float = 0.1,
        max_steps: int = 600,
        post_load_delay: float = 2.0,
        settle_delay: float = 2.0,
        top_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.step_px = step_px
        self.interval = interval
        self.max_steps = max_steps
        self.post_load_delay = post_load_delay
        self.settle_delay = settle_delay
        self.top_delay = top_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, sleep: Sleep = asyncio.sleep) -> "LazyLoadTrigger":
        return cls(
            step_px=settings.SCROLL_STEP_PX,
            interval=settings.SCROLL_INTERVAL,
            max_steps=settings.SCROLL_MAX_STEPS,
            post_load_delay=settings.POST_LOAD_DELAY,
            settle_delay=settings.SCROLL_SETTLE_DELAY,
            top_delay=settings.SCROLL_TOP_DELAY,
            sleep=sleep,
        )

    async def trigger(self, page: Any) -> int:
        """Run the scroll protocol on ``page``; returns the number of scroll steps taken."""
        await self._sleep(self.post_load_delay)

        distance = 0
        steps = 0
        height = 0
        while steps < self.max_steps:
            height = await page.evaluate(SCROLL_STEP_JS, self.step_px)
            distance += self.step_px
            steps += 1
            if distance >= height:
                break
            await self._sleep(self.interval)
        else:
            logger.warning(
                f"Lazy-load scroll stopped after {steps} steps "
                f"({distance}px scrolled, page height {height}px)"
            )

        await self._sleep(self.settle_delay)
        await page.evaluate(SCROLL_TOP_JS)
        await self._sleep(self.top_delay)

        logger.debug(f"Lazy-load scroll finished: {steps} steps, {distance}px")
        return steps
