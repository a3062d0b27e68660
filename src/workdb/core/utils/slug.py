"""Slug generation for anchors"""

import re


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated URL-safe slug."""
    text = text.strip().lower()
    text = re.sub(r'[\W_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-')
