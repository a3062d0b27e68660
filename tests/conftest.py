"""Root test configuration: a small works directory and logger cleanup"""

import logging

import pytest
from PIL import Image

from workdb import reporting


ALPHA_MD = """\
---
tags: [art, code]
made with: [python]
---

# Alpha

:: en

Some text about the API.

*[API]: Application Programming Interface

![A red square ~](red.png)

[Website](https://example.com)

:: fr

Du texte.

![Un carré rouge](red.png)
"""

BETA_MD = """\
# Beta

Just one paragraph.
"""


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging so later tests log nowhere stale."""
    yield
    logger = logging.getLogger(reporting.LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    reporting._handler = None


@pytest.fixture(name="works_root")
def works_root_fixture(tmp_path):
    """works/alpha (two languages, one image), works/beta, and a folder that is not a work."""
    root = tmp_path / "works"
    alpha = root / "alpha"
    alpha.mkdir(parents=True)
    (alpha / "description.md").write_text(ALPHA_MD, encoding="utf-8")
    Image.new("RGB", (8, 8), (255, 0, 0)).save(alpha / "red.png")

    beta = root / "beta"
    beta.mkdir()
    (beta / "description.md").write_text(BETA_MD, encoding="utf-8")

    (root / "notes").mkdir()
    (root / "notes" / "todo.txt").write_text("not a work")
    return root
