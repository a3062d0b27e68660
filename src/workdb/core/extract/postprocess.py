"""Abbreviation substitution and footnote extraction"""

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from workdb.core.extract.markup import inner_html
from workdb.core.models import Paragraph


PREFORMATTED_RE = re.compile(r'^<pre[\s>].*</pre>$', re.DOTALL)
BREAKS = ("<br>", "<br/>", "<br />")
UNTOUCHED_PARENTS = ["abbr", "code", "pre"]


def trim_html_whitespace(markup: str) -> str:
    """Strip whitespace and leading/trailing <br> tags."""
    markup = markup.strip()
    changed = True
    while changed:
        changed = False
        for br in BREAKS:
            if markup.startswith(br):
                markup, changed = markup[len(br):].strip(), True
            if markup.endswith(br):
                markup, changed = markup[:-len(br)].strip(), True
    return markup


def _abbreviate(soup: BeautifulSoup, term: str, definition: str) -> None:
    pattern = re.compile(rf'(?<!\w){re.escape(term)}(?!\w)')
    for string in soup.find_all(string=pattern):
        if isinstance(string, Comment) or string.find_parent(UNTOUCHED_PARENTS):
            continue
        nodes = []
        for i, piece in enumerate(pattern.split(str(string))):
            if i:
                abbr = soup.new_tag("abbr", attrs={"title": definition})
                abbr.string = term
                nodes.append(abbr)
            if piece:
                nodes.append(NavigableString(piece))
        string.replace_with(*nodes)


def replace_abbreviations(paragraph: Paragraph, abbreviations: dict[str, str]) -> Paragraph:
    """Wrap whole-word occurrences of each term in <abbr title="definition">.

    Only text nodes are rewritten; a paragraph that is a single <pre> block is
    returned untouched.
    """
    if not abbreviations or PREFORMATTED_RE.match(paragraph.content.strip()):
        return paragraph
    soup = BeautifulSoup(paragraph.content, "html.parser")
    for term, definition in abbreviations.items():
        _abbreviate(soup, term, definition)
    return paragraph.model_copy(update={"content": str(soup)})


def extract_footnotes(body: Tag, labels: dict[str, str]) -> dict[str, str]:
    """Return {label: body markup} from the rendered footnotes container."""
    container = body.find(["section", "div"], class_="footnotes")
    if container is None:
        return {}

    footnotes: dict[str, str] = {}
    for item in container.find_all("li", class_="footnote-item"):
        for backref in item.find_all("a", class_="footnote-backref"):
            backref.decompose()
        item_id = item.get("id", "")
        key = labels.get(item_id) or item_id.removeprefix("fn").lstrip(":")
        children = [c for c in item.contents if not (isinstance(c, NavigableString) and not c.strip())]
        if len(children) == 1 and isinstance(children[0], Tag) and children[0].name == "p":
            markup = inner_html(children[0])
        else:
            markup = inner_html(item)
        footnotes[key] = trim_html_whitespace(markup)
    return footnotes
