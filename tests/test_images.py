# tests/test_images.py
import pytest

from models.article import ImageDescriptor, RawImage
from services.reader.images import (
    APPLY_SOURCES_JS,
    COLLECT_IMAGES_JS,
    ImageSelector,
    first_srcset_url,
    resolve_image_source,
    select_content_images,
)
from tests.conftest import FakeElement


def test_data_src_used_when_src_empty():
    image = RawImage(src="", data_src="https://cdn.example.com/photo.jpg")
    assert resolve_image_source(image) == "https://cdn.example.com/photo.jpg"


def test_real_src_preferred_over_lazy_attributes():
    image = RawImage(src="/img/a.jpg", data_src="/img/b.jpg")
    assert resolve_image_source(image) == "/img/a.jpg"


def test_data_uri_src_falls_back_in_order():
    image = RawImage(
        src="data:image/gif;base64,R0lGODlhAQABAAAAACw=",
        data_lazy_src="/img/lazy.jpg",
        data_original="/img/original.jpg",
    )
    assert resolve_image_source(image) == "/img/lazy.jpg"

    image = RawImage(src="data:image/png;base64,AAAA", data_original="/img/original.jpg")
    assert resolve_image_source(image) == "/img/original.jpg"


def test_placeholder_src_is_skipped():
    image = RawImage(src="/static/placeholder.gif", data_src="/img/real.jpg")
    assert resolve_image_source(image) == "/img/real.jpg"


def test_srcset_used_last():
    image = RawImage(srcset="/img/small.jpg 480w, /img/large.jpg 1080w")
    assert resolve_image_source(image) == "/img/small.jpg"

    image = RawImage(data_srcset="/img/d1.jpg 1x, /img/d2.jpg 2x", srcset="/img/s.jpg 1x")
    assert resolve_image_source(image) == "/img/d1.jpg"


def test_first_srcset_url():
    assert first_srcset_url(" a.jpg 1x , b.jpg 2x") == "a.jpg"
    assert first_srcset_url("") == ""


def test_no_usable_source_is_discarded():
    images = [
        RawImage(src="", natural_width=800, natural_height=600),
        RawImage(src="data:image/png;base64,AAAA", natural_width=800, natural_height=600),
    ]
    assert select_content_images(images) == []


def test_size_filter_keeps_two_of_three_in_dom_order():
    images = [
        RawImage(src="/a.jpg", alt="first", natural_width=300, natural_height=300),
        RawImage(src="/icon.png", natural_width=50, natural_height=50),
        RawImage(src="/b.jpg", alt="second", natural_width=300, natural_height=300),
    ]

    selected = select_content_images(images)

    assert [d.index for d in selected] == [0, 1]
    assert [d.src for d in selected] == ["/a.jpg", "/b.jpg"]
    assert selected[0].alt == "first"


def test_threshold_boundaries():
    images = [
        RawImage(src="/exact.jpg", natural_width=200, natural_height=100),
        RawImage(src="/narrow.jpg", natural_width=199, natural_height=400),
        RawImage(src="/short.jpg", natural_width=400, natural_height=99),
    ]
    assert [d.src for d in select_content_images(images)] == ["/exact.jpg"]


def test_attribute_dimensions_used_when_natural_size_unknown():
    image = RawImage(src="/a.jpg", attr_width="640px", attr_height="480")
    [descriptor] = select_content_images([image])
    assert (descriptor.width, descriptor.height) == (640, 480)


def test_selection_is_idempotent_and_never_grows():
    images = [
        RawImage(src="/a.jpg", natural_width=1200, natural_height=800),
        RawImage(src="", data_src="/b.jpg", attr_width="300", attr_height="150"),
        RawImage(src="/tiny.gif", natural_width=1, natural_height=1),
    ]
    once = select_content_images(images)
    twice = select_content_images(once)

    assert len(once) <= len(images)
    assert all(d.width >= 200 and d.height >= 100 for d in once)
    assert twice == once


def test_descriptor_rejects_negative_index():
    with pytest.raises(ValueError):
        ImageDescriptor(index=-1, src="/a.jpg", width=300, height=300)


@pytest.mark.asyncio
async def test_resolve_lazy_sources_writes_resolved_src_back():
    rows = [
        {"src": "", "data_src": "/lazy.jpg"},
        {"src": "/eager.jpg"},
    ]
    applied_args = {}

    def apply(arg):
        applied_args.update(arg)
        return 1

    root = FakeElement(handlers={COLLECT_IMAGES_JS: lambda arg: rows, APPLY_SOURCES_JS: apply})

    assert await ImageSelector().resolve_lazy_sources(root) == 1
    assert applied_args["sources"] == {"0": "/lazy.jpg", "1": "/eager.jpg"}


@pytest.mark.asyncio
async def test_selector_reads_dom_and_filters():
    rows = [
        {"src": "/a.jpg", "natural_width": 300, "natural_height": 300},
        {"src": "/b.jpg", "natural_width": 50, "natural_height": 50},
    ]
    root = FakeElement(handlers={COLLECT_IMAGES_JS: lambda arg: rows})

    selected = await ImageSelector(min_width=200, min_height=100).select(root)

    assert [d.src for d in selected] == ["/a.jpg"]
