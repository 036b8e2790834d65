# run.py
"""
Capture one URL from the command line, without the HTTP layer.

    python run.py https://example.com/article -o article.png
    python run.py https://example.com/article --images -o ./images
    python run.py https://example.com/article --profile chrome_mac
"""

import argparse
import asyncio
import base64
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from core.config import Settings, settings
from core.exceptions import ReaderServiceException
from core.logging import setup_logging
from services.browser.profile_loader import list_available_profiles
from services.browser.session import BrowserSession
from services.reader.pipeline import ReaderPipeline


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reader-mode screenshot of a web page")
    parser.add_argument("url", help="Page to capture")
    parser.add_argument("-o", "--output", default=None,
                        help="Output file (screenshot) or directory (--images)")
    parser.add_argument("--images", action="store_true",
                        help="Capture each content image instead of the full page")
    parser.add_argument("--profile", default=None, choices=list_available_profiles(),
                        help=f"Stealth profile (default: {settings.STEALTH_PROFILE})")
    return parser.parse_args(argv)


def settings_for(profile: Optional[str]) -> Settings:
    if profile is None:
        return settings
    return settings.model_copy(update={"STEALTH_PROFILE": profile})


async def capture(url: str, output: Path, images: bool, run_settings: Settings = settings) -> int:
    session = BrowserSession.from_settings(run_settings)
    try:
        await session.start()
        pipeline = ReaderPipeline.from_settings(session, run_settings)
        if images:
            output.mkdir(parents=True, exist_ok=True)
            captured = await pipeline.screenshot_images(url)
            for image in captured:
                path = output / f"image-{image.index}.png"
                path.write_bytes(base64.b64decode(image.data))
                logger.info(f"Saved {image.src} ({image.width}x{image.height}) to {path}")
        else:
            result = await pipeline.screenshot(url)
            output.write_bytes(result.png)
            logger.info(f"Saved screenshot to {output} (reader view: {result.reader_applied})")
    except ReaderServiceException as exc:
        logger.error(f"{exc.code}: {exc.message}")
        return 1
    finally:
        await session.shutdown()
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(settings)
    default = "images" if args.images else "screenshot.png"
    return asyncio.run(
        capture(args.url, Path(args.output or default), args.images, settings_for(args.profile))
    )


if __name__ == "__main__":
    sys.exit(main())
