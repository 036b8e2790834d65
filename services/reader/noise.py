# services/reader/noise.py
"""
Popup, modal, cookie-banner and floating-overlay removal.

As with the density scan, the page only measures: ``COLLECT_NOISE_JS``
reports every element below ``<body>`` that carries a class, id or role or
is positioned ``fixed``/``sticky``, tagged with a temporary marker.  Which of
them are noise is decided here:

* attribute rule – class or id contains a configured substring
  (case-insensitive), or the role is one of the configured roles;
* z-order rule – ``fixed``/``sticky`` with a ``z-index`` strictly above the
  threshold.

Attribute matches are removed first, z-order matches second.  ``<body>``
and ``<html>`` are never removed.
"""

from typing import Any, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel

from services.browser.profile_loader import NoisePatterns, get_noise_patterns

NOISE_MARKER = "data-reader-noise"

FLOATING_POSITIONS = ("fixed", "sticky")
PROTECTED_TAGS = ("body", "html")

COLLECT_NOISE_JS = """
(marker) => {
    const out = [];
    document.querySelectorAll('body *').forEach(el => {
        const classAttr = el.getAttribute('class') || '';
        const idAttr = el.getAttribute('id') || '';
        const roleAttr = el.getAttribute('role') || '';
        const style = window.getComputedStyle(el);
        const floating = style.position === 'fixed' || style.position === 'sticky';
        if (!classAttr && !idAttr && !roleAttr && !floating) return;
        const z = parseInt(style.zIndex, 10);
        const index = out.length;
        el.setAttribute(marker, String(index));
        out.push({
            index: index,
            tag: el.tagName.toLowerCase(),
            class_name: classAttr,
            element_id: idAttr,
            role: roleAttr,
            position: style.position,
            z_index: Number.isNaN(z) ? null : z,
        });
    });
    return out;
}
"""

REMOVE_MARKED_JS = """
({ marker, groups }) => {
    const counts = groups.map(indices => {
        let removed = 0;
        indices.forEach(index => {
            const el = document.querySelector(`[${marker}="${index}"]`);
            if (!el || !el.isConnected) return;
            el.remove();
            removed++;
        });
        return removed;
    });
    document.querySelectorAll(`[${marker}]`).forEach(el => el.removeAttribute(marker));
    return counts;
}
"""


class NoiseCandidate(BaseModel):
    index: int
    tag: str
    class_name: str = ""
    element_id: str = ""
    role: str = ""
    position: str = "static"
    z_index: Optional[int] = None     # None for ``auto``


class NoiseReport(BaseModel):
    selector_removed: int = 0
    z_order_removed: int = 0


def matches_attributes(candidate: NoiseCandidate, patterns: NoisePatterns) -> bool:
    if candidate.tag in PROTECTED_TAGS:
        return False
    return patterns.matches(candidate.class_name, candidate.element_id, candidate.role)


def is_floating_overlay(candidate: NoiseCandidate, threshold: int) -> bool:
    if candidate.tag in PROTECTED_TAGS:
        return False
    return (
        candidate.position in FLOATING_POSITIONS
        and candidate.z_index is not None
        and candidate.z_index > threshold
    )


def classify_noise(
    candidates: List[NoiseCandidate], patterns: NoisePatterns
) -> Tuple[List[int], List[int]]:
    """Split candidates into (attribute matches, z-order matches); each element lands in at most one."""
    by_attribute: List[int] = []
    by_z_order: List[int] = []
    for candidate in candidates:
        if matches_attributes(candidate, patterns):
            by_attribute.append(candidate.index)
        elif is_floating_overlay(candidate, patterns.z_index_threshold):
            by_z_order.append(candidate.index)
    return by_attribute, by_z_order


class NoiseSuppressor:
    def __init__(self, patterns: Optional[NoisePatterns] = None):
        self.patterns = patterns or get_noise_patterns()

    async def suppress(self, page: Any) -> NoiseReport:
        rows = await page.evaluate(COLLECT_NOISE_JS, NOISE_MARKER)
        candidates = [NoiseCandidate(**row) for row in rows]
        by_attribute, by_z_order = classify_noise(candidates, self.patterns)

        selector_removed, z_order_removed = await page.evaluate(
            REMOVE_MARKED_JS, {"marker": NOISE_MARKER, "groups": [by_attribute, by_z_order]}
        )
        report = NoiseReport(selector_removed=selector_removed, z_order_removed=z_order_removed)
        logger.debug(
            f"Noise removed: {report.selector_removed} by selector, "
            f"{report.z_order_removed} by z-order"
        )
        return report
