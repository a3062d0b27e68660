"""Unit tests for core/extract/markup.py"""

import pytest

from workdb.core.extract.markup import LIST_BREAK, break_lists, normalize_embeds, render_tree


@pytest.mark.parametrize("text,expected", [
    (">[alt](video.mp4)", "![alt](video.mp4)"),
    ("before\n>[a](b.png)\nafter", "before\n![a](b.png)\nafter"),
    ("see >[a](b.png)", "see >[a](b.png)"),
    ("> a quote", "> a quote"),
    (">[a](b.png) trailing text", ">[a](b.png) trailing text"),
])
def test_normalize_embeds(text, expected):
    """Only whole-line '>[alt](src)' embeds are rewritten."""
    assert normalize_embeds(text) == expected


def test_break_lists_after_two_blank_lines():
    """Two blank lines after a list item end the list."""
    out = break_lists("- a\n- b\n\n\n- c\n")
    assert LIST_BREAK in out
    body, _ = render_tree("- a\n- b\n\n\n- c\n")
    assert len(body.find_all("ul", recursive=False)) == 2


def test_break_lists_single_blank_line_keeps_list():
    assert break_lists("- a\n\n- b") == "- a\n\n- b"


def test_break_lists_ignores_fenced_code():
    """List-looking lines inside a fence are left untouched."""
    text = "```\n- a\n\n\n- b\n```"
    assert break_lists(text) == text


def test_render_tree_hard_breaks():
    """Single newlines inside a paragraph become <br>."""
    body, _ = render_tree("line one\nline two")
    assert body.find("p").find("br") is not None


def test_render_tree_heading_ids():
    body, _ = render_tree("## My Section")
    assert body.find("h2")["id"] == "my-section"


def test_render_tree_ordered_list_start():
    body, _ = render_tree("3. three\n4. four")
    assert body.find("ol")["start"] == "3"


def test_render_tree_block_attributes():
    """A '{#id}' line sets the id of the following block."""
    body, _ = render_tree("{#intro}\nHello")
    assert body.find("p")["id"] == "intro"


def test_render_tree_footnote_labels():
    """Rendered footnote item IDs map back to the author's labels."""
    body, labels = render_tree("Text[^note]\n\n[^note]: The note.\n")
    assert labels == {"fn1": "note"}
    assert body.find("li", id="fn1") is not None


def test_render_tree_embed_alt_syntax():
    body, _ = render_tree(">[A clip](clip.mp4)")
    img = body.find("img")
    assert img["src"] == "clip.mp4"
    assert img["alt"] == "A clip"
