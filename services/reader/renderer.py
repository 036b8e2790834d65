# services/reader/renderer.py
"""
ReaderRenderer – turns an extracted article into a stable single-column layout.

Two strategies, chosen per deployment with ``READER_STRATEGY``:

* ``replace``  – drop the page body and inject synthesized markup built
  from ``Article`` plus a fixed stylesheet.
* ``in_place`` – keep the original DOM, hide everything that is not the
  article and restyle the article node where it lives (original image
  sources untouched).

``render()`` returns ``True`` when the reader view was applied; on ``False``
the caller screenshots the page as it is.
"""

from html import escape
from typing import Any, Dict

from loguru import logger

from models.article import ExtractionResult

READER_CSS = """
body.reader-view {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, Cantarell, sans-serif;
    line-height: 1.6;
    max-width: %(width)dpx;
    margin: 0 auto;
    padding: 40px 20px;
    background: #fff;
    color: #333;
}
.reader-view h1 { font-size: 2.5em; margin-bottom: 0.3em; line-height: 1.2; }
.reader-view .byline { color: #666; font-style: italic; margin-bottom: 1.5em; font-size: 0.95em; }
.reader-view .content { font-size: 1.1em; }
.reader-view .content p { margin: 1.2em 0; }
.reader-view .content img { max-width: 100%%; height: auto; display: block; margin: 1.5em auto; }
.reader-view .content h2 { margin-top: 1.5em; margin-bottom: 0.5em; }
.reader-view .content ul, .reader-view .content ol { margin: 1em 0; padding-left: 2em; }
.reader-view .content blockquote { border-left: 3px solid #ddd; margin: 1.5em 0; padding-left: 1em; color: #666; }
"""

REPLACE_BODY_JS = """
({ css, body }) => {
    document.head.querySelectorAll('style, link[rel="stylesheet"]').forEach(node => node.remove());
    const style = document.createElement('style');
    style.textContent = css;
    document.head.appendChild(style);
    document.body.removeAttribute('style');
    document.body.className = 'reader-view';
    document.body.innerHTML = body;
    window.scrollTo(0, 0);
    return true;
}
"""

IN_PLACE_JS = """
(root, opts) => {
    if (!root || !root.isConnected) return false;

    root.querySelectorAll(opts.strip).forEach(el => { if (el !== root) el.remove(); });

    const wrapper = document.createElement('div');
    wrapper.id = 'reader-view';
    wrapper.style.cssText = `max-width:${opts.width}px;margin:0 auto;padding:40px 20px;` +
        'background:#fff;color:#333;line-height:1.6;' +
        "font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;";

    const heading = document.createElement('h1');
    heading.textContent = opts.title;
    heading.style.cssText = 'font-size:2.5em;margin-bottom:0.3em;line-height:1.2;';
    wrapper.appendChild(heading);

    if (opts.byline) {
        const byline = document.createElement('div');
        byline.className = 'byline';
        byline.textContent = opts.byline;
        byline.style.cssText = 'color:#666;font-style:italic;margin-bottom:1.5em;font-size:0.95em;';
        wrapper.appendChild(byline);
    }

    // moving the node keeps it attached, so handles to it stay valid
    wrapper.appendChild(root);
    document.body.appendChild(wrapper);
    Array.from(document.body.children).forEach(child => {
        if (child !== wrapper) child.style.setProperty('display', 'none', 'important');
    });

    root.style.setProperty('width', 'auto', 'important');
    root.style.setProperty('max-width', '100%', 'important');
    root.style.setProperty('float', 'none', 'important');
    root.style.setProperty('margin', '0', 'important');
    root.querySelectorAll('p').forEach(p => { p.style.margin = '1.2em 0'; p.style.fontSize = '1.1em'; });
    root.querySelectorAll('img').forEach(img => {
        img.style.maxWidth = '100%';
        img.style.height = 'auto';
        img.style.display = 'block';
        img.style.margin = '1.5em auto';
    });
    document.body.style.background = '#fff';
    window.scrollTo(0, 0);
    return true;
}
"""

IN_ARTICLE_NOISE = (
    'nav, header, footer, aside, '
    '[class*="comment" i], [id*="comment" i], '
    '[class*="share" i], [id*="share" i], '
    '[class*="newsletter" i], [id*="newsletter" i]'
)


def build_reader_markup(title: str, byline: str, content: str) -> str:
    """Body markup for the replace strategy; ``content`` must already be sanitized."""
    parts = [f"<h1>{escape(title or '')}</h1>"]
    if byline:
        parts.append(f'<div class="byline">{escape(byline)}</div>')
    parts.append(f'<div class="content">{content}</div>')
    return "\n".join(parts)


class ReaderRenderer:
    STRATEGIES = ("replace", "in_place")

    def __init__(self, strategy: str = "replace", width_px: int = 800):
        if strategy not in self.STRATEGIES:
            raise ValueError(f"Unknown reader strategy: {strategy!r}")
        self.strategy = strategy
        self.width_px = width_px

    @classmethod
    def from_settings(cls, settings) -> "ReaderRenderer":
        return cls(strategy=settings.READER_STRATEGY, width_px=settings.READER_WIDTH_PX)

    async def render(self, page: Any, result: ExtractionResult) -> bool:
        if not result.found:
            return False
        if self.strategy == "replace":
            return await self._replace(page, result)
        return await self._in_place(result)

    async def _replace(self, page: Any, result: ExtractionResult) -> bool:
        article = result.article
        if not article.content:
            logger.info("Article has no content to render")
            return False
        payload: Dict[str, str] = {
            "css": READER_CSS % {"width": self.width_px},
            "body": build_reader_markup(article.title, article.byline or "", article.content),
        }
        return bool(await page.evaluate(REPLACE_BODY_JS, payload))

    async def _in_place(self, result: ExtractionResult) -> bool:
        if result.element is None:
            logger.info("No live article element; in-place reader view not possible")
            return False
        opts = {
            "title": result.article.title,
            "byline": result.article.byline or "",
            "width": self.width_px,
            "strip": IN_ARTICLE_NOISE,
        }
        applied = bool(await result.element.evaluate(IN_PLACE_JS, opts))
        if not applied:
            logger.warning("Article element detached before rendering")
        return applied
