"""Layout resolution: ordered block IDs (+ declared grid) -> rows of block-ID cells"""

import re
from typing import Any, Optional

from workdb.core.models import EMPTY_CELL, LocalizedDescription
from workdb.errors import LayoutError


SHORTHAND_RE = re.compile(r'^([pml])(\d+)$')
EMPTY_REFERENCES = (None, "", ".")


def default_layout(order: list[str]) -> list[list[str]]:
    """One block per row, in document order."""
    return [[block_id] for block_id in order]


def _kinds(localized: LocalizedDescription) -> dict[str, list[str]]:
    return {
        'p': [b.id for b in localized.paragraphs],
        'm': [b.id for b in localized.media],
        'l': [b.id for b in localized.links],
    }


def _resolve_cell(reference: Any, language: str, order: set[str], kinds: dict[str, list[str]]) -> str:
    """Resolve one declared cell to a block ID or the empty-cell sentinel."""
    if reference in EMPTY_REFERENCES:
        return EMPTY_CELL
    reference = str(reference).strip()
    if reference in order:
        return reference

    m = SHORTHAND_RE.match(reference)
    if m is None:
        raise LayoutError(language, reference)
    kind, index = m.group(1), int(m.group(2))
    if not 1 <= index <= len(kinds[kind]):
        raise LayoutError(language, reference, f"only {len(kinds[kind])} block(s) of that kind")
    return kinds[kind][index - 1]


def resolve_layout(
    language: str,
    localized: LocalizedDescription,
    declared: Optional[list[Any]] = None,
    ) -> list[list[str]]:
    """Return the presentation grid for one language.

    Without a declaration, each block gets its own row. Declared rows are
    resolved cell by cell (block IDs or p/m/l shorthands, 1-based); blocks
    the declaration leaves out follow one per row so none is dropped.
    Raises LayoutError on a reference that resolves to no block.
    """
    if not declared:
        return default_layout(localized.order)

    order = set(localized.order)
    kinds = _kinds(localized)
    rows: list[list[str]] = []
    for row in declared:
        cells = row if isinstance(row, list) else [row]
        rows.append([_resolve_cell(cell, language, order, kinds) for cell in cells])

    placed = {cell for row in rows for cell in row}
    rows.extend([block_id] for block_id in localized.order if block_id not in placed)
    return rows
