"""Top-level tree nodes to typed content blocks"""

import html
import re
from typing import Optional
from urllib.parse import unquote

from bs4 import NavigableString, Tag

from workdb.core.extract.markup import inner_html
from workdb.core.extract.sigils import decode_attributes
from workdb.core.models import LocalizedDescription, Link, MediaEmbedDeclaration, Paragraph
from workdb.core.utils.ids import BlockIdGenerator
from workdb.core.utils.slug import slugify


PARAGRAPH_LIKE = frozenset((
    'p', 'ol', 'ul', 'h2', 'h3', 'h4', 'h5', 'h6',
    'dl', 'blockquote', 'hr', 'pre', 'table',
))
ABBREVIATION_RE = re.compile(r'^\s*\*\[([^\]]+)\]:\s+(.+)$')
LANGUAGE_MARKER_RE = re.compile(r'^::\s+(.+)$')
BREAK_RE = re.compile(r'<br\s*/?>')
FOOTNOTES_SEPARATOR = 'footnotes-sep'


def _content_children(tag: Tag) -> list:
    """Children of tag, ignoring whitespace-only strings."""
    return [c for c in tag.contents if not (isinstance(c, NavigableString) and not c.strip())]


def _is_paragraph_like(node) -> bool:
    if not isinstance(node, Tag) or node.name not in PARAGRAPH_LIKE:
        return False
    return FOOTNOTES_SEPARATOR not in (node.get('class') or [])


def parse_abbreviations(markup: str) -> Optional[dict[str, str]]:
    """Return {term: definition} if every line of markup is '*[TERM]: definition', else None."""
    lines = [line.strip() for line in BREAK_RE.split(markup.strip()) if line.strip()]
    matches = [ABBREVIATION_RE.match(line) for line in lines]
    if not matches or not all(matches):
        return None
    return {html.unescape(m.group(1)): html.unescape(m.group(2).strip()) for m in matches}


def _media(node: Tag, block_id: str) -> MediaEmbedDeclaration:
    """Media embed from an <img>. The renderer percent-encodes src; the source is stored as written."""
    alt, attributes = decode_attributes(node.get('alt', ''))
    source = unquote(node.get('src', ''))
    return MediaEmbedDeclaration(
        id=block_id,
        anchor=slugify(source),
        alt=alt,
        title=node.get('title', ''),
        source=source,
        attributes=attributes,
    )


def _link(node: Tag, block_id: str) -> Link:
    return Link(
        id=block_id,
        anchor=slugify(node.get_text()),
        text=inner_html(node),
        title=node.get('title', ''),
        url=node.get('href', ''),
    )


def classify_blocks(body: Tag, ids: BlockIdGenerator) -> LocalizedDescription:
    """Classify the direct children of body into media, links, abbreviations and paragraphs.

    Block IDs are appended to the order in encounter order. Abbreviation
    definitions and stray language markers are not blocks.
    """
    localized = LocalizedDescription()

    h1 = body.find('h1', recursive=False)
    if h1 is not None:
        localized.title = inner_html(h1).strip()

    for node in body.children:
        if not _is_paragraph_like(node):
            continue

        block_id = ids()
        children = _content_children(node)
        only = children[0] if len(children) == 1 else None
        markup = inner_html(node)

        if isinstance(only, Tag) and only.name == 'img':
            localized.media.append(_media(only, block_id))
        elif isinstance(only, Tag) and only.name == 'a':
            localized.links.append(_link(only, block_id))
        elif (abbreviations := parse_abbreviations(markup)) is not None:
            localized.abbreviations.update(abbreviations)
            continue
        elif LANGUAGE_MARKER_RE.match(markup):
            continue
        else:
            localized.paragraphs.append(Paragraph(
                id=block_id,
                anchor=node.get('id', ''),
                content=str(node),
            ))
        localized.order.append(block_id)

    return localized
