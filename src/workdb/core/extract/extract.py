"""Convert one language's raw markdown into a LocalizedDescription"""

from typing import Optional

from workdb.core.extract.blocks import classify_blocks
from workdb.core.extract.markup import render_tree
from workdb.core.extract.postprocess import extract_footnotes, replace_abbreviations
from workdb.core.models import LocalizedDescription
from workdb.core.utils.ids import BlockIdGenerator
from workdb.reporting import Reporter


def extract_language(
    markdown: str,
    parser_config: str = 'gfm-like',
    id_length: int = 5,
    reporter: Optional[Reporter] = None,
    ) -> LocalizedDescription:
    """Render, classify and post-process a single language's markdown."""
    reporter = reporter or Reporter()
    body, labels = render_tree(markdown, parser_config)
    localized = classify_blocks(body, BlockIdGenerator(id_length))
    localized.footnotes = extract_footnotes(body, labels)
    localized.paragraphs = [
        replace_abbreviations(p, localized.abbreviations) for p in localized.paragraphs
    ]
    if localized.abbreviations:
        reporter.debug("Applied %d abbreviation(s)", len(localized.abbreviations))
    return localized
