"""Markup normalization and markdown-it rendering into a BeautifulSoup tree"""

import re
from functools import lru_cache

from bs4 import BeautifulSoup, Tag
from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.attrs import attrs_block_plugin, attrs_plugin
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin


ALT_EMBED_RE = re.compile(r'^>(\[[^\]]+\]\([^)]+\)[ \t]*)$', re.MULTILINE)
FENCE_RE = re.compile(r'^\s*(```|~~~)')
LIST_ITEM_RE = re.compile(r'^\s*(?:[-*+]|\d+[.)])\s+')
LIST_BREAK = "<!-- list end -->"


def normalize_embeds(text: str) -> str:
    """Rewrite whole-line '>[alt](src)' embeds into '![alt](src)'."""
    return ALT_EMBED_RE.sub(r'!\1', text)


def break_lists(text: str) -> str:
    """End an open list after two consecutive blank lines, outside fenced code."""
    out: list[str] = []
    in_fence = in_list = False
    blanks = 0

    for line in text.split("\n"):
        if FENCE_RE.match(line):
            in_fence = not in_fence
            blanks = 0
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue

        if not line.strip():
            blanks += 1
            out.append(line)
            if blanks == 2 and in_list:
                out.extend([LIST_BREAK, ""])
                in_list = False
            continue

        blanks = 0
        if LIST_ITEM_RE.match(line):
            in_list = True
        elif not line[0].isspace():
            in_list = False
        out.append(line)

    return "\n".join(out)


@lru_cache(maxsize=None)
def make_parser(preset: str = 'gfm-like') -> MarkdownIt:
    """Build a MarkdownIt instance with footnotes, heading IDs, attributes and hard breaks."""
    return (
        MarkdownIt(preset, options_update={"linkify": False, "breaks": True})
        .use(footnote_plugin)
        .use(deflist_plugin)
        .use(attrs_plugin)
        .use(attrs_block_plugin)
        .use(anchors_plugin, min_level=1, max_level=6)
    )


def _footnote_labels(env: dict) -> dict[str, str]:
    """Map rendered footnote item IDs ('fn1') to the labels written by the author."""
    entries = env.get("footnotes", {}).get("list", {})
    items = entries.items() if isinstance(entries, dict) else enumerate(entries)
    return {
        f"fn{index + 1}": entry.get("label") or str(index + 1)
        for index, entry in items
    }


def render_tree(text: str, preset: str = 'gfm-like') -> tuple[Tag, dict[str, str]]:
    """Render normalized markdown to HTML and return (body node, footnote labels)."""
    env: dict = {}
    html = make_parser(preset).render(break_lists(normalize_embeds(text)), env)
    soup = BeautifulSoup(f"<body>{html}</body>", "html.parser")
    return soup.body, _footnote_labels(env)


def inner_html(tag: Tag) -> str:
    """Markup of a node's children, like element.innerHTML."""
    return "".join(str(child) for child in tag.contents)
