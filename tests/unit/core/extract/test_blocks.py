"""Unit tests for core/extract/blocks.py"""

import pytest

from workdb.core.extract.blocks import classify_blocks, parse_abbreviations
from workdb.core.extract.markup import render_tree
from workdb.core.utils.ids import BlockIdGenerator


def _classify(markdown):
    body, _ = render_tree(markdown)
    return classify_blocks(body, BlockIdGenerator())


def test_image_becomes_media():
    """A paragraph holding only an image is a media embed."""
    localized = _classify('![A cat](cat.png "Cat")')
    assert localized.paragraphs == []
    media = localized.media[0]
    assert (media.source, media.alt, media.title, media.anchor) == ("cat.png", "A cat", "Cat", "cat-png")
    assert localized.order == [media.id]


def test_alt_embed_syntax_becomes_media():
    localized = _classify(">[A clip](clip.mp4)")
    assert [m.source for m in localized.media] == ["clip.mp4"]


def test_media_sigils_decoded():
    media = _classify("![clip ~>](clip.mp4)").media[0]
    assert media.alt == "clip"
    assert media.attributes.loop and media.attributes.autoplay and media.attributes.muted


def test_lone_link_becomes_link():
    """A paragraph holding only a link is a link block."""
    localized = _classify('[My site](https://example.com "Site")')
    link = localized.links[0]
    assert (link.text, link.url, link.title, link.anchor) == ("My site", "https://example.com", "Site", "my-site")


def test_mixed_content_is_paragraph():
    """Text around an image keeps the paragraph as a paragraph."""
    localized = _classify("Look: ![a](a.png)")
    assert localized.media == []
    assert len(localized.paragraphs) == 1


def test_paragraph_content_is_outer_html():
    assert _classify("Hello *world*").paragraphs[0].content == "<p>Hello <em>world</em></p>"


def test_heading_anchor():
    """Sub-headings are paragraph blocks anchored by their heading ID."""
    paragraph = _classify("## Details").paragraphs[0]
    assert paragraph.anchor == "details"
    assert paragraph.content.startswith("<h2")


def test_h1_is_title_not_block():
    localized = _classify("# Title\n\nBody")
    assert localized.title == "Title"
    assert len(localized.order) == 1


def test_rule_is_block():
    localized = _classify("A\n\n---\n\nB")
    assert [p.content for p in localized.paragraphs][1] == "<hr/>"
    assert len(localized.order) == 3


def test_abbreviation_definition_is_not_block():
    """Abbreviation definitions are recorded and produce no block."""
    localized = _classify("*[API]: Application Programming Interface")
    assert localized.abbreviations == {"API": "Application Programming Interface"}
    assert localized.order == []


def test_consecutive_abbreviation_definitions():
    """Several definitions in one paragraph are all recorded."""
    localized = _classify("*[API]: A P I\n*[CLI]: Command Line")
    assert localized.abbreviations == {"API": "A P I", "CLI": "Command Line"}
    assert localized.order == []


def test_stray_language_marker_dropped():
    assert _classify(":: en").order == []


def test_footnote_separator_not_block():
    """The footnotes separator and container are not content blocks."""
    localized = _classify("Text[^1]\n\n[^1]: Note")
    assert len(localized.order) == 1


def test_order_follows_document():
    localized = _classify("Para\n\n![m](m.png)\n\n[l](https://example.com)")
    assert localized.order == [localized.paragraphs[0].id, localized.media[0].id, localized.links[0].id]


@pytest.mark.parametrize("markup,expected", [
    ("*[HTML]: Hyper Text", {"HTML": "Hyper Text"}),
    ("*[A]: one<br/>\n*[B]: two", {"A": "one", "B": "two"}),
    ("*[A]: one<br/>\nnot a definition", None),
    ("plain text", None),
])
def test_parse_abbreviations(markup, expected):
    assert parse_abbreviations(markup) == expected


@pytest.mark.parametrize("markdown,source,anchor", [
    ("![a](café.png)",        "café.png",      "café-png"),
    ("![b](<my pic.png>)",    "my pic.png",    "my-pic-png"),
    ("![c](dir/plain.png)",   "dir/plain.png", "dir-plain-png"),
])
def test_media_source_kept_as_written(markdown, source, anchor):
    """Non-ASCII and space characters in the source are not percent-encoded."""
    media = _classify(markdown).media[0]
    assert (media.source, media.anchor) == (source, anchor)
