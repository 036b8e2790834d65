# services/reader/sanitize.py
from typing import Optional

from bs4 import BeautifulSoup, Comment

from models.article import RawImage
from services.reader.images import resolve_image_source

STRIP_TAGS = [
    'script', 'style', 'iframe', 'noscript', 'form', 'object', 'embed',
    'meta', 'link', 'button', 'input', 'select', 'textarea',
]

DROP_ATTRIBUTES = {'style', 'class', 'id'}


def _raw_image(tag) -> RawImage:
    return RawImage(
        src=tag.get('src', ''),
        data_src=tag.get('data-src', ''),
        data_lazy_src=tag.get('data-lazy-src', ''),
        data_original=tag.get('data-original', ''),
        data_srcset=tag.get('data-srcset', ''),
        srcset=tag.get('srcset', ''),
        alt=tag.get('alt', ''),
    )


def sanitize_fragment(html: Optional[str]) -> Optional[str]:
    """
    Strip active content from an article fragment before it is injected
    into a page: scripts, embeds, forms, comments, event-handler and styling
    attributes.  ``<img>`` sources are resolved from lazy-loading attributes.
    """
    if html is None:
        return None

    soup = BeautifulSoup(html, 'html.parser')
    for element in soup.find_all(STRIP_TAGS):
        element.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            value = tag.attrs[attr]
            if attr.lower().startswith('on') or attr in DROP_ATTRIBUTES:
                del tag[attr]
            elif isinstance(value, str) and value.strip().lower().startswith('javascript:'):
                del tag[attr]

    for img in soup.find_all('img'):
        src = resolve_image_source(_raw_image(img))
        if not src:
            img.decompose()
            continue
        img['src'] = src
        for lazy_attr in ('data-src', 'data-lazy-src', 'data-original', 'data-srcset', 'srcset', 'loading'):
            if lazy_attr in img.attrs:
                del img[lazy_attr]

    return str(soup)
