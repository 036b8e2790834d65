# services/reader/density.py
"""
Text-density heuristic for finding the article container in the live DOM.

The browser side only *measures*: ``COLLECT_CANDIDATES_JS`` walks the
candidate containers, tags each with ``data-reader-candidate="<index>"`` and
returns their text statistics.  Scoring and selection happen here in plain
Python.

Selection rule
--------------
* Candidates are scanned semantic containers first (``article``, ``main``,
  ``[role="main"]``), then generic ``div``/``section``; an element matched
  by several selectors is measured once, at its first match.
* The highest score strictly greater than the floor wins.  Ties go to the
  candidate met first in scan order; later candidates must score strictly
  higher to replace it.
* When a fingerprint (the opening text of an already-extracted article) is
  given, candidates whose text contains it are preferred: the maximum is
  taken over those alone if any clears the floor.
"""

from typing import Any, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from models.article import DensityCandidate

CANDIDATE_MARKER = "data-reader-candidate"

SEMANTIC_SELECTORS: Sequence[str] = ("article", "main", '[role="main"]')
GENERIC_SELECTORS: Sequence[str] = ("div, section",)

FORMULA_PARAGRAPHS = "paragraphs"
FORMULA_TEXT = "text"
PARAGRAPH_BONUS = 100

FINGERPRINT_LENGTH = 60
FINGERPRINT_MIN_PARAGRAPH = 40

COLLECT_CANDIDATES_JS = """
({ groups, marker, fingerprint }) => {
    document.querySelectorAll(`[${marker}]`).forEach(el => el.removeAttribute(marker));
    const textOf = (el) => ((el.innerText !== undefined ? el.innerText : el.textContent) || '').trim();
    const normalise = (text) => text.replace(/\\s+/g, ' ').trim();
    const seen = new Set();
    const out = [];
    groups.forEach((selector, group) => {
        document.querySelectorAll(selector).forEach(el => {
            if (seen.has(el)) return;
            seen.add(el);
            const paragraphs = el.querySelectorAll('p');
            let paragraphLength = 0;
            paragraphs.forEach(p => { paragraphLength += textOf(p).length; });
            const text = textOf(el);
            const index = out.length;
            el.setAttribute(marker, String(index));
            out.push({
                index: index,
                group: group,
                tag: el.tagName.toLowerCase(),
                text_length: text.length,
                paragraph_text_length: paragraphLength,
                paragraph_count: paragraphs.length,
                contains_fingerprint: fingerprint ? normalise(el.textContent || '').includes(fingerprint) : false,
            });
        });
    });
    return out;
}
"""

CLEAR_MARKERS_JS = """
(marker) => {
    document.querySelectorAll(`[${marker}]`).forEach(el => el.removeAttribute(marker));
}
"""


def normalise_text(text: str) -> str:
    return " ".join((text or "").split())


def content_fingerprint(html: Optional[str]) -> str:
    """
    Opening text of an article fragment: the start of its first substantial
    paragraph, whitespace-collapsed.  ``""`` when there is nothing usable.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    paragraphs = [normalise_text(p.get_text()) for p in soup.find_all("p")]
    for text in paragraphs:
        if len(text) >= FINGERPRINT_MIN_PARAGRAPH:
            return text[:FINGERPRINT_LENGTH]
    text = normalise_text(soup.get_text())
    return text[:FINGERPRINT_LENGTH] if len(text) >= FINGERPRINT_MIN_PARAGRAPH else ""


def score_candidate(candidate: DensityCandidate, formula: str = FORMULA_PARAGRAPHS) -> int:
    if formula == FORMULA_PARAGRAPHS:
        return candidate.paragraph_text_length
    if formula == FORMULA_TEXT:
        return candidate.text_length + candidate.paragraph_count * PARAGRAPH_BONUS
    raise ValueError(f"Unknown density formula: {formula!r}")


def _best_in(
    candidates: Iterable[DensityCandidate], floor: int, formula: str
) -> Optional[DensityCandidate]:
    best: Optional[DensityCandidate] = None
    best_score = floor
    for candidate in candidates:
        score = score_candidate(candidate, formula)
        if score > best_score:
            best, best_score = candidate, score
    return best


def pick_article_candidate(
    candidates: Sequence[DensityCandidate],
    floor: int,
    formula: str = FORMULA_PARAGRAPHS,
) -> Optional[DensityCandidate]:
    """Choose the article container, or ``None`` when nothing clears ``floor``."""
    matching = [c for c in candidates if c.contains_fingerprint]
    best = _best_in(matching, floor, formula)
    if best is None:
        best = _best_in(candidates, floor, formula)
    return best


class DensityScanner:
    """Measures the live DOM and returns a handle to the winning container."""

    def __init__(self, floor: int = 200, formula: str = FORMULA_PARAGRAPHS):
        # fail fast on a misconfigured formula
        score_candidate(DensityCandidate(index=0, tag="div"), formula)
        self.floor = floor
        self.formula = formula

    async def collect(self, page: Any, fingerprint: str = "") -> List[DensityCandidate]:
        rows = await page.evaluate(
            COLLECT_CANDIDATES_JS,
            {
                "groups": [*SEMANTIC_SELECTORS, *GENERIC_SELECTORS],
                "marker": CANDIDATE_MARKER,
                "fingerprint": normalise_text(fingerprint),
            },
        )
        return [
            DensityCandidate(semantic=row["group"] < len(SEMANTIC_SELECTORS), **row)
            for row in rows
        ]

    async def locate(self, page: Any, fingerprint: str = "") -> Optional[Any]:
        """Return an ``ElementHandle`` for the best container, or ``None``."""
        candidates = await self.collect(page, fingerprint)
        try:
            best = pick_article_candidate(candidates, self.floor, self.formula)
            if best is None:
                return None
            return await page.query_selector(f'[{CANDIDATE_MARKER}="{best.index}"]')
        finally:
            await page.evaluate(CLEAR_MARKERS_JS, CANDIDATE_MARKER)
