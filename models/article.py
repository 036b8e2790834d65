# models/article.py
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Article(BaseModel):
    """Readable content produced by an extraction strategy."""

    title: str = ""
    byline: Optional[str] = None
    content: Optional[str] = None     # sanitized HTML fragment, None if parsing failed


class ExtractionResult(BaseModel):
    """
    Tagged outcome of article location: ``Found(article, element)`` or
    ``NotFound``.

    ``element`` is a Playwright ``ElementHandle`` into the *live* document
    (the node judged to be the article root).  It may be ``None`` for a
    ``Found`` result when the library parsed an article from the clone but
    no live container cleared the density floor.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    article: Optional[Article] = None
    element: Optional[Any] = None
    strategy: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.article is not None

    @classmethod
    def found_with(
        cls, article: Article, element: Any = None, strategy: Optional[str] = None
    ) -> "ExtractionResult":
        return cls(article=article, element=element, strategy=strategy)

    @classmethod
    def not_found(cls) -> "ExtractionResult":
        return cls()


class DensityCandidate(BaseModel):
    """Per-container measurements collected from the live DOM."""

    index: int                        # position in scan order
    tag: str
    semantic: bool = False            # matched by article / main / [role="main"]
    text_length: int = 0              # innerText length of the whole container
    paragraph_text_length: int = 0    # sum of text lengths of contained <p>
    paragraph_count: int = 0
    contains_fingerprint: bool = False  # text includes the extracted article's opening


class RawImage(BaseModel):
    """Attributes of one ``<img>`` as read from the page, before resolution."""

    src: str = ""
    data_src: str = ""
    data_lazy_src: str = ""
    data_original: str = ""
    data_srcset: str = ""
    srcset: str = ""
    alt: str = ""
    natural_width: int = 0
    natural_height: int = 0
    attr_width: str = ""
    attr_height: str = ""


class ImageDescriptor(BaseModel):
    """A content image that survived the size filter."""

    index: int = Field(..., ge=0)
    src: str
    alt: str = ""
    width: int
    height: int


class CapturedImage(ImageDescriptor):
    """Descriptor plus the base64-encoded PNG bytes of its screenshot."""

    data: str


class ImagesResponse(BaseModel):
    totalImages: int
    images: List[CapturedImage] = Field(default_factory=list)


class ScreenshotResult(BaseModel):
    png: bytes
    reader_applied: bool = False
    strategy: Optional[str] = None
