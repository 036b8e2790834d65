# tests/test_density.py
import pytest

from models.article import DensityCandidate
from services.reader.density import (
    CANDIDATE_MARKER,
    CLEAR_MARKERS_JS,
    COLLECT_CANDIDATES_JS,
    DensityScanner,
    content_fingerprint,
    pick_article_candidate,
    score_candidate,
)
from tests.conftest import FakePage


def candidate(index, tag="div", paragraphs=0, text=0, count=0, semantic=None):
    if semantic is None:
        semantic = tag in ("article", "main")
    return DensityCandidate(
        index=index,
        tag=tag,
        semantic=semantic,
        paragraph_text_length=paragraphs,
        text_length=text,
        paragraph_count=count,
    )


def test_article_beats_short_sidebar():
    """600 characters of article text vs a 50-character sidebar."""
    article = candidate(0, "article", paragraphs=600, text=650, count=4)
    sidebar = candidate(1, "div", paragraphs=50, text=50, count=1)

    assert pick_article_candidate([article, sidebar], floor=200) is article


def test_single_candidate_above_floor_is_selected():
    candidates = [candidate(i, "div", paragraphs=i * 10) for i in range(10)]
    winner = candidate(10, "section", paragraphs=900)
    candidates.insert(4, winner)

    assert pick_article_candidate(candidates, floor=200) is winner


def test_nothing_above_floor_is_not_found():
    candidates = [candidate(0, "article", paragraphs=150), candidate(1, "div", paragraphs=199)]
    assert pick_article_candidate(candidates, floor=200) is None


def test_score_must_exceed_floor_strictly():
    assert pick_article_candidate([candidate(0, "div", paragraphs=200)], floor=200) is None
    assert pick_article_candidate([candidate(0, "div", paragraphs=201)], floor=200) is not None


def test_tie_goes_to_first_in_scan_order():
    first = candidate(0, "div", paragraphs=500)
    second = candidate(1, "div", paragraphs=500)

    assert pick_article_candidate([first, second], floor=200) is first


def test_highest_score_wins_over_semantic_container():
    # a page of <article> teaser cards with the story body in a div
    teaser = candidate(0, "article", paragraphs=250)
    body = candidate(1, "div", paragraphs=5000)

    assert pick_article_candidate([teaser, body], floor=200) is body


def test_wrapper_adding_nothing_loses_tie_to_article():
    article = candidate(0, "article", paragraphs=600)
    wrapper = candidate(1, "div", paragraphs=600)

    assert pick_article_candidate([article, wrapper], floor=200) is article


def test_fingerprint_match_preferred_over_larger_container():
    comments = candidate(0, "div", paragraphs=2400)
    story = candidate(1, "div", paragraphs=900)
    story.contains_fingerprint = True

    assert pick_article_candidate([comments, story], floor=200) is story


def test_fingerprint_match_below_floor_falls_back_to_maximum():
    caption = candidate(0, "div", paragraphs=120)
    caption.contains_fingerprint = True
    body = candidate(1, "section", paragraphs=800)

    assert pick_article_candidate([caption, body], floor=200) is body


def test_content_fingerprint_uses_first_substantial_paragraph():
    html = (
        "<p>Short lede.</p>"
        "<p>The rivers of the   northern <em>ranges</em> are fed almost entirely by snowmelt every spring.</p>"
    )

    fingerprint = content_fingerprint(html)

    assert fingerprint == "The rivers of the northern ranges are fed almost entirely by"
    assert content_fingerprint("<p>tiny</p>") == ""
    assert content_fingerprint(None) == ""


def test_teaser_below_floor_loses_to_body():
    teaser = candidate(0, "article", paragraphs=80)
    body = candidate(1, "div", paragraphs=700)

    assert pick_article_candidate([teaser, body], floor=200) is body


def test_text_formula_adds_paragraph_bonus():
    c = candidate(0, "div", paragraphs=10, text=300, count=2)
    assert score_candidate(c, "text") == 500
    assert score_candidate(c, "paragraphs") == 10


def test_floor_is_configurable():
    short = candidate(0, "article", paragraphs=350)
    assert pick_article_candidate([short], floor=200) is short
    assert pick_article_candidate([short], floor=500) is None


def test_unknown_formula_rejected():
    with pytest.raises(ValueError):
        DensityScanner(formula="bogus")


@pytest.mark.asyncio
async def test_scanner_returns_live_handle_and_clears_markers():
    rows = [
        {"index": 0, "group": 0, "tag": "article", "text_length": 620,
         "paragraph_text_length": 600, "paragraph_count": 4},
        {"index": 1, "group": 3, "tag": "div", "text_length": 50,
         "paragraph_text_length": 50, "paragraph_count": 1},
    ]
    handle = object()
    page = FakePage(
        handlers={COLLECT_CANDIDATES_JS: lambda arg: rows},
        selectors={f'[{CANDIDATE_MARKER}="0"]': handle},
    )

    located = await DensityScanner(floor=200).locate(page)

    assert located is handle
    assert page.evaluated() == [COLLECT_CANDIDATES_JS, CLEAR_MARKERS_JS]
    groups = page.calls[0][2]["groups"]
    assert groups[:3] == ["article", "main", '[role="main"]']


@pytest.mark.asyncio
async def test_scanner_not_found_still_clears_markers():
    page = FakePage(handlers={COLLECT_CANDIDATES_JS: lambda arg: []})

    assert await DensityScanner(floor=200).locate(page) is None
    assert page.evaluated()[-1] == CLEAR_MARKERS_JS


@pytest.mark.asyncio
async def test_scanner_sends_normalised_fingerprint():
    page = FakePage(handlers={COLLECT_CANDIDATES_JS: lambda arg: []})

    await DensityScanner(floor=200).locate(page, "  The rivers \n of the north  ")

    assert page.calls[0][2]["fingerprint"] == "The rivers of the north"
