# tests/test_renderer.py
import pytest

from models.article import Article, ExtractionResult
from services.reader.renderer import (
    IN_ARTICLE_NOISE,
    IN_PLACE_JS,
    REPLACE_BODY_JS,
    ReaderRenderer,
    build_reader_markup,
)
from tests.conftest import FakeElement, FakePage


def found(content="<p>Body</p>", element=None, byline="Jane Doe"):
    article = Article(title="Mountain Rivers", byline=byline, content=content)
    return ExtractionResult.found_with(article, element, "readability")


def test_markup_escapes_title_and_byline():
    markup = build_reader_markup("<b>Title</b>", "A & B", "<p>x</p>")

    assert "<h1>&lt;b&gt;Title&lt;/b&gt;</h1>" in markup
    assert '<div class="byline">A &amp; B</div>' in markup
    assert '<div class="content"><p>x</p></div>' in markup


def test_markup_omits_empty_byline():
    assert "byline" not in build_reader_markup("T", "", "<p>x</p>")


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        ReaderRenderer(strategy="overlay")


@pytest.mark.asyncio
async def test_not_found_is_a_no_op():
    page = FakePage()

    assert await ReaderRenderer().render(page, ExtractionResult.not_found()) is False
    assert page.calls == []


@pytest.mark.asyncio
async def test_replace_injects_stylesheet_and_markup():
    page = FakePage(handlers={REPLACE_BODY_JS: lambda payload: True})

    applied = await ReaderRenderer(strategy="replace", width_px=720).render(page, found())

    assert applied is True
    payload = page.calls[0][2]
    assert "max-width: 720px" in payload["css"]
    assert "<h1>Mountain Rivers</h1>" in payload["body"]
    assert "Jane Doe" in payload["body"]


@pytest.mark.asyncio
async def test_replace_without_content_falls_back():
    page = FakePage()

    assert await ReaderRenderer().render(page, found(content=None)) is False
    assert page.calls == []


@pytest.mark.asyncio
async def test_in_place_restyles_live_element():
    element = FakeElement(handlers={IN_PLACE_JS: lambda opts: True})

    applied = await ReaderRenderer(strategy="in_place").render(FakePage(), found(element=element))

    assert applied is True
    script, opts = element.calls[0]
    assert script == IN_PLACE_JS
    assert opts["title"] == "Mountain Rivers"
    assert opts["strip"] == IN_ARTICLE_NOISE
    assert opts["width"] == 800


@pytest.mark.asyncio
async def test_in_place_needs_live_element():
    assert await ReaderRenderer(strategy="in_place").render(FakePage(), found()) is False


@pytest.mark.asyncio
async def test_in_place_detached_element_reported_as_not_applied():
    element = FakeElement(handlers={IN_PLACE_JS: lambda opts: False})

    assert await ReaderRenderer(strategy="in_place").render(FakePage(), found(element=element)) is False
