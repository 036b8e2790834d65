# scripts/check_browser_session.py
import asyncio
import sys
from pathlib import Path

# Make the repo root importable when run as a script
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from services.browser.session import BrowserSession
from services.browser.stealth import StealthConfigurator


async def main() -> None:
    session = BrowserSession(max_pages=1)
    await session.start()
    try:
        stealth = StealthConfigurator()
        async with session.acquire_page(stealth.context_options()) as page_ctx:
            await stealth.configure(page_ctx)
            await page_ctx.page.goto("https://example.com")
            webdriver = await page_ctx.page.evaluate("() => navigator.webdriver")
            print("✅ Title:", await page_ctx.page.title(), "| navigator.webdriver =", webdriver)
    finally:
        await session.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
