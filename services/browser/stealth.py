# services/browser/stealth.py
import json
from typing import Any, Dict, Optional

from loguru import logger

from services.browser.profile_loader import StealthProfile, get_stealth_profile
from services.browser.session import PageContext


def build_navigator_script(profile: StealthProfile) -> str:
    """Init script patching the navigator surface before any page script runs."""
    nav = profile.navigator
    return f"""
        Object.defineProperty(navigator, 'webdriver', {{get: () => {json.dumps(nav.webdriver)}}});
        Object.defineProperty(navigator, 'plugins', {{get: () => {json.dumps(nav.plugins)}}});
        Object.defineProperty(navigator, 'languages', {{get: () => {json.dumps(nav.languages)}}});
        window.chrome = window.chrome || {{runtime: {{}}}};
    """


class StealthConfigurator:
    """
    Applies a fixed anti-detection profile to a fresh page.

    The user agent, viewport, locale and extra headers belong to the browser
    context (``context_options()``, passed to ``BrowserSession.acquire_page``)
    so request headers, client hints and ``navigator`` agree.  ``configure()``
    must then run before the first navigation: the navigator overrides are
    registered as an init script, so every document the page subsequently
    creates (redirects included) inherits them.
    """

    def __init__(self, profile: Optional[StealthProfile] = None, profile_name: str = "default"):
        self.profile = profile or get_stealth_profile(profile_name)
        self._script = build_navigator_script(self.profile)

    def context_options(self) -> Dict[str, Any]:
        return {
            "user_agent": self.profile.user_agent,
            "viewport": {
                "width": self.profile.viewport.width,
                "height": self.profile.viewport.height,
            },
            "locale": self.profile.navigator.languages[0],
            "extra_http_headers": dict(self.profile.headers),
        }

    async def configure(self, page_ctx: PageContext) -> None:
        logger.debug("Applying navigator overrides")
        await page_ctx.page.add_init_script(self._script)
