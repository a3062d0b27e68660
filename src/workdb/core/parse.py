"""Description parsing: header/body split, language sections, per-language extraction"""

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from workdb.core.extract.extract import extract_language
from workdb.core.models import LocalizedDescription, ParsedWork, WorkMetadata
from workdb.errors import DescriptionError
from workdb.reporting import Reporter


HEADER_DELIMITER_RE = re.compile(r'^-{3,}$')
LANGUAGE_MARKER_RE = re.compile(r'^::\s+(.+)$')
TAB = " " * 4


def split_header(text: str) -> tuple[str, str]:
    """Return (header_text, body) split on a pair of '---' delimiter lines.

    The opening delimiter must be the first non-blank line. Tabs are expanded
    to four spaces first. Without a complete delimiter pair, the header is
    empty and the whole text is the body.
    """
    lines = text.replace("\t", TAB).split("\n")
    start = next((i for i, line in enumerate(lines) if line.strip()), None)
    if start is None or not HEADER_DELIMITER_RE.match(lines[start].rstrip()):
        return "", "\n".join(lines)

    end = next(
        (i for i in range(start + 1, len(lines)) if HEADER_DELIMITER_RE.match(lines[i].rstrip())),
        None,
    )
    if end is None:
        return "", "\n".join(lines)

    header = "\n".join(lines[start + 1:end])
    body = "\n".join(lines[:start] + lines[end + 1:])
    return header, body


def decode_metadata(header: str, reporter: Optional[Reporter] = None) -> WorkMetadata:
    """Decode header YAML into WorkMetadata; anything undecodable yields empty metadata."""
    reporter = reporter or Reporter()
    if not header.strip():
        return WorkMetadata()
    try:
        raw: Any = yaml.safe_load(header)
    except yaml.YAMLError as e:
        reporter.warning("Ignoring invalid description header: %s", e)
        return WorkMetadata()
    if not isinstance(raw, dict):
        reporter.warning("Ignoring description header: expected a mapping, got %s", type(raw).__name__)
        return WorkMetadata()
    try:
        return WorkMetadata.model_validate(raw)
    except ValidationError as e:
        reporter.warning("Ignoring undecodable description header: %s", e)
        return WorkMetadata()


def split_languages(body: str) -> tuple[str, dict[str, str]]:
    """Return (preamble, {language: text}) split on '::  language' marker lines.

    Marker lines are consumed. Repeating a marker appends to that language.
    """
    preamble: list[str] = []
    sections: dict[str, list[str]] = {}
    current: Optional[str] = None

    for line in body.split("\n"):
        m = LANGUAGE_MARKER_RE.match(line)
        if m:
            current = m.group(1).strip()
            sections.setdefault(current, [])
            continue
        (preamble if current is None else sections[current]).append(line)

    return "\n".join(preamble), {lang: "\n".join(lines) for lang, lines in sections.items()}


def parse_description(
    text: str,
    parser_config: str = 'gfm-like',
    default_language: str = 'default',
    id_length: int = 5,
    reporter: Optional[Reporter] = None,
    ) -> ParsedWork:
    """Parse a full description document into a ParsedWork."""
    reporter = reporter or Reporter()
    header, body = split_header(text)
    metadata = decode_metadata(header, reporter)
    preamble, sections = split_languages(body)

    if not sections:
        sections = {default_language: ""}

    localized: dict[str, LocalizedDescription] = {}
    for language, section in sections.items():
        raw = f"{preamble}\n{section}" if section else preamble
        localized[language] = extract_language(raw, parser_config, id_length, reporter)
        reporter.debug(
            "Parsed language %s: %d block(s)", language, len(localized[language].order),
        )

    return ParsedWork(metadata=metadata, localized=localized)


def parse_file(path: Path, reporter: Optional[Reporter] = None, **options) -> ParsedWork:
    """Read and parse a description file. Raises DescriptionError if unreadable."""
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptionError(f"could not read {path}: {e}") from e
    return parse_description(text, reporter=reporter, **options)
