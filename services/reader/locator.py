# services/reader/locator.py
"""
ArticleLocator – finds "the article" on a rendered page.

Two document handles are involved and never mixed:

* the **clone** – ``page.content()`` serialises the live document into a
  throwaway string that ``readability-lxml`` is free to tear apart;
* the **live DOM** – the only place that has layout, computed styles and
  loaded images, i.e. the only thing that can be screenshotted.

The readability result is bridged back to the live DOM by re-locating the
article container with the density scanner, preferring containers whose
text includes the opening of the readability summary.

Strategies are tried in order and the first ``Found`` wins.
"""

import asyncio
from typing import Any, List, Optional, Protocol, Sequence

from bs4 import BeautifulSoup
from loguru import logger
from prometheus_client import Counter
from readability import Document
from readability.readability import Unparseable

from models.article import Article, ExtractionResult
from services.reader.density import DensityScanner, content_fingerprint
from services.reader.sanitize import sanitize_fragment

EXTRACTION_OUTCOMES = Counter(
    'reader_extraction_outcomes_total',
    'Article location outcomes by winning strategy',
    ['strategy'],
)

BYLINE_SELECTORS = [
    'meta[name="author"]',
    'meta[property="article:author"]',
    'meta[name="byl"]',
    '[rel="author"]',
    '[itemprop="author"]',
    '.byline',
    '.author',
]

NO_TITLE = "[no-title]"


def extract_byline(soup: BeautifulSoup) -> Optional[str]:
    for selector in BYLINE_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        if node.name == 'meta':
            value = (node.get('content') or '').strip()
        else:
            value = node.get_text(" ", strip=True)
        if value and not value.startswith(('http://', 'https://')):
            return value[:200]
    return None


def parse_article(html: str, min_text_length: int = 200) -> Optional[Article]:
    """
    Run readability over a serialised copy of the document.  Returns
    ``None`` when the library fails or its summary is too thin to be an
    article.
    """
    try:
        document = Document(html)
        summary = document.summary(html_partial=True)
        title = document.short_title() or document.title()
    except (Unparseable, ValueError) as exc:
        logger.debug(f"Readability could not parse document: {exc}")
        return None

    text = BeautifulSoup(summary, 'html.parser').get_text(" ", strip=True)
    if len(text) < min_text_length:
        logger.debug(f"Readability summary too short ({len(text)} chars)")
        return None

    if not title or title == NO_TITLE:
        title = ""
    byline = extract_byline(BeautifulSoup(html, 'html.parser'))
    return Article(title=title.strip(), byline=byline, content=sanitize_fragment(summary))


class ExtractionStrategy(Protocol):
    name: str

    async def extract(self, page: Any) -> ExtractionResult:
        ...


class ReadabilityStrategy:
    """Library-assisted: parse the clone, then re-locate the live container."""

    name = "readability"

    def __init__(self, scanner: DensityScanner):
        self.scanner = scanner

    async def extract(self, page: Any) -> ExtractionResult:
        html = await page.content()
        article = await asyncio.get_running_loop().run_in_executor(
            None, parse_article, html, self.scanner.floor
        )
        if article is None:
            return ExtractionResult.not_found()

        element = await self.scanner.locate(page, content_fingerprint(article.content))
        if element is None:
            logger.info("Readability found an article but no live container cleared the floor")
        return ExtractionResult.found_with(article, element, self.name)


class DensityStrategy:
    """Density heuristic alone, on the live document."""

    name = "density"

    def __init__(self, scanner: DensityScanner):
        self.scanner = scanner

    async def extract(self, page: Any) -> ExtractionResult:
        element = await self.scanner.locate(page)
        if element is None:
            return ExtractionResult.not_found()

        article = Article(
            title=(await page.title()).strip(),
            byline=None,
            content=sanitize_fragment(await element.inner_html()),
        )
        return ExtractionResult.found_with(article, element, self.name)


class ArticleLocator:
    def __init__(self, strategies: Sequence[ExtractionStrategy]):
        self.strategies: List[ExtractionStrategy] = list(strategies)

    @classmethod
    def from_settings(cls, settings) -> "ArticleLocator":
        scanner = DensityScanner(floor=settings.DENSITY_FLOOR, formula=settings.DENSITY_FORMULA)
        return cls([ReadabilityStrategy(scanner), DensityStrategy(scanner)])

    async def locate(self, page: Any) -> ExtractionResult:
        for strategy in self.strategies:
            result = await strategy.extract(page)
            if result.found:
                logger.info(f"Article located by '{strategy.name}' strategy")
                EXTRACTION_OUTCOMES.labels(strategy=strategy.name).inc()
                return result
            logger.debug(f"Strategy '{strategy.name}' found nothing")

        EXTRACTION_OUTCOMES.labels(strategy="none").inc()
        return ExtractionResult.not_found()
