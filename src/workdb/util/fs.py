from __future__ import annotations
import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a sibling temporary file, then rename it over path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def list_work_ids(root: Path, description: str) -> list[str]:
    """Sorted names of directories under root holding the description file.

    `description` is relative to each work directory (e.g. '.workdb/description.md').
    """
    return sorted(
        p.name for p in root.iterdir()
        if p.is_dir() and (p / description).is_file()
    )
