# services/reader/images.py
"""
Content-image selection.

Resolution of lazy-loading attributes and the size filter are plain Python
functions over ``RawImage`` records; ``ImageSelector`` only reads those
records from the page and writes resolved sources back into the DOM.
"""

import re
from typing import Any, Iterable, List, Tuple, Union

from loguru import logger

from models.article import ImageDescriptor, RawImage

LAZY_SOURCE_FIELDS = ("data_src", "data_lazy_src", "data_original")
SRCSET_FIELDS = ("data_srcset", "srcset")

PLACEHOLDER_RE = re.compile(
    r"(?:^about:blank$|(?:placeholder|blank|spacer|transparent|pixel|lazy[-_]?load)[^/]*\.(?:gif|png|svg|jpe?g)(?:\?.*)?$)",
    re.I,
)

IMAGE_MARKER = "data-reader-img"

COLLECT_IMAGES_JS = """
(root, marker) => {
    const attr = (img, name) => (img.getAttribute(name) || '').trim();
    return Array.from(root.querySelectorAll('img')).map((img, position) => {
        img.setAttribute(marker, String(position));
        return {
            src: attr(img, 'src'),
            data_src: attr(img, 'data-src'),
            data_lazy_src: attr(img, 'data-lazy-src'),
            data_original: attr(img, 'data-original'),
            data_srcset: attr(img, 'data-srcset'),
            srcset: attr(img, 'srcset'),
            alt: attr(img, 'alt'),
            natural_width: img.naturalWidth || 0,
            natural_height: img.naturalHeight || 0,
            attr_width: attr(img, 'width'),
            attr_height: attr(img, 'height'),
        };
    });
}
"""

APPLY_SOURCES_JS = """
(root, args) => {
    let applied = 0;
    root.querySelectorAll(`img[${args.marker}]`).forEach(img => {
        const resolved = args.sources[img.getAttribute(args.marker)];
        if (resolved && img.getAttribute('src') !== resolved) {
            img.removeAttribute('srcset');
            img.setAttribute('loading', 'eager');
            img.setAttribute('src', resolved);
            applied++;
        }
        img.removeAttribute(args.marker);
    });
    return applied;
}
"""


def is_data_uri(value: str) -> bool:
    return value.strip().lower().startswith("data:")


def is_placeholder(value: str) -> bool:
    return bool(PLACEHOLDER_RE.search(value.strip()))


def is_usable_source(value: str) -> bool:
    value = (value or "").strip()
    return bool(value) and not is_data_uri(value) and not is_placeholder(value)


def first_srcset_url(srcset: str) -> str:
    """``"a.jpg 1x, b.jpg 2x"`` -> ``"a.jpg"``."""
    for candidate in (srcset or "").split(","):
        parts = candidate.strip().split()
        if parts:
            return parts[0]
    return ""


def resolve_image_source(image: RawImage) -> str:
    """
    Effective source of an ``<img>``: a real ``src`` first, then
    ``data-src``, ``data-lazy-src``, ``data-original``, then the first URL of
    ``data-srcset`` / ``srcset``.  A placeholder ``src`` is used only when
    nothing else is available.  Returns ``""`` when no usable source exists.
    """
    if is_usable_source(image.src):
        return image.src.strip()
    for field in LAZY_SOURCE_FIELDS:
        value = getattr(image, field)
        if is_usable_source(value):
            return value.strip()
    for field in SRCSET_FIELDS:
        url = first_srcset_url(getattr(image, field))
        if is_usable_source(url):
            return url
    src = (image.src or "").strip()
    if src and not is_data_uri(src):
        return src
    return ""


def _parse_dimension(value: str) -> int:
    match = re.match(r"\s*(\d+)", value or "")
    return int(match.group(1)) if match else 0


def image_dimensions(image: RawImage) -> Tuple[int, int]:
    """Natural size, falling back to the ``width``/``height`` attributes."""
    width = image.natural_width or _parse_dimension(image.attr_width)
    height = image.natural_height or _parse_dimension(image.attr_height)
    return width, height


def _as_raw(image: Union[RawImage, ImageDescriptor]) -> RawImage:
    if isinstance(image, ImageDescriptor):
        return RawImage(
            src=image.src,
            alt=image.alt,
            natural_width=image.width,
            natural_height=image.height,
        )
    return image


def select_content_images(
    images: Iterable[Union[RawImage, ImageDescriptor]],
    min_width: int = 200,
    min_height: int = 100,
) -> List[ImageDescriptor]:
    """
    Keep images with a usable source and ``width >= min_width and
    height >= min_height``; indices are assigned in output order.
    Accepts its own output, on which it is a no-op.
    """
    selected: List[ImageDescriptor] = []
    for image in images:
        raw = _as_raw(image)
        src = resolve_image_source(raw)
        if not src:
            continue
        width, height = image_dimensions(raw)
        if width < min_width or height < min_height:
            continue
        selected.append(
            ImageDescriptor(index=len(selected), src=src, alt=raw.alt, width=width, height=height)
        )
    return selected


class ImageSelector:
    def __init__(self, min_width: int = 200, min_height: int = 100):
        self.min_width = min_width
        self.min_height = min_height

    async def collect(self, root: Any) -> List[RawImage]:
        rows = await root.evaluate(COLLECT_IMAGES_JS, IMAGE_MARKER)
        return [RawImage(**row) for row in rows]

    async def resolve_lazy_sources(self, root: Any) -> int:
        """Write resolved sources into ``src`` so lazy images actually load."""
        raw_images = await self.collect(root)
        sources = {str(position): resolve_image_source(raw) for position, raw in enumerate(raw_images)}
        applied = await root.evaluate(APPLY_SOURCES_JS, {"marker": IMAGE_MARKER, "sources": sources})
        if applied:
            logger.debug(f"Resolved {applied} lazy image source(s)")
        return applied

    async def select(self, root: Any) -> List[ImageDescriptor]:
        """Measure the images under ``root`` (call after ``resolve_lazy_sources``)."""
        raw_images = await self.collect(root)
        await root.evaluate(
            f"(root) => root.querySelectorAll('img[{IMAGE_MARKER}]')"
            f".forEach(img => img.removeAttribute('{IMAGE_MARKER}'))"
        )
        selected = select_content_images(raw_images, self.min_width, self.min_height)
        logger.info(f"Selected {len(selected)} of {len(raw_images)} image(s) as content images")
        return selected
