"""Output database, build metadata and build lock persistence"""

import json
import sys
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Optional, TextIO

from filelock import SoftFileLock, Timeout
from pydantic import ValidationError

from workdb.core.models import AnalyzedWork, BuildMetadata
from workdb.errors import BuildInProgressError
from workdb.reporting import Reporter
from workdb.util.fs import atomic_write_text


STDOUT = "-"
BUILD_METADATA_FILENAME = ".workdb-build-metadata.json"


def output_directory(output: str) -> Path:
    """Directory the output database lives in; the working directory for stdout."""
    return Path.cwd() if output == STDOUT else Path(output).parent


def build_metadata_path(output: str, configured: Optional[str] = None) -> Path:
    """Configured build metadata path, else a file beside the output database."""
    if configured:
        return Path(configured)
    return output_directory(output) / BUILD_METADATA_FILENAME


def load_database(output: str, reporter: Optional[Reporter] = None) -> dict[str, AnalyzedWork]:
    """Read a previously written database. Missing or unusable files give {}."""
    reporter = reporter or Reporter()
    path = Path(output)
    if output == STDOUT or not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"expected a mapping of works, got {type(raw).__name__}")
        return {work_id: AnalyzedWork.model_validate(work) for work_id, work in raw.items()}
    except (OSError, ValueError, ValidationError) as e:
        reporter.warning("Couldn't use previous built database file %s: %s", path, e)
        return {}


def dump_database(works: dict[str, AnalyzedWork], minified: bool = False) -> str:
    """Serialize works in model field order, pretty-printed or minified."""
    data = {work_id: work.model_dump(mode="json") for work_id, work in works.items()}
    if minified:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(data, ensure_ascii=False, indent=4)


def write_database(
    works: dict[str, AnalyzedWork],
    output: str,
    minified: bool = False,
    stream: Optional[TextIO] = None,
    ) -> None:
    """Write the database atomically, or to stdout when output is '-'."""
    text = dump_database(works, minified)
    if output == STDOUT:
        (stream or sys.stdout).write(text + "\n")
        return
    atomic_write_text(Path(output), text)


def load_build_metadata(path: Path, reporter: Optional[Reporter] = None) -> BuildMetadata:
    """Read build metadata; a missing or corrupt file means 'never built'."""
    reporter = reporter or Reporter()
    if not path.exists():
        return BuildMetadata()
    try:
        return BuildMetadata.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        reporter.info("Ignoring build metadata file %s: %s", path, e)
        return BuildMetadata()


def write_build_metadata(path: Path, metadata: BuildMetadata) -> None:
    atomic_write_text(path, metadata.model_dump_json(indent=2))


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def advance_build_metadata(metadata: BuildMetadata, now: Optional[datetime] = None) -> BuildMetadata:
    """Return metadata stamped with now, strictly later than the previous stamp."""
    now = _aware(now or datetime.now(timezone.utc))
    previous = metadata.previous_build_date
    if previous is not None and now <= _aware(previous):
        now = _aware(previous) + timedelta(microseconds=1)
    return BuildMetadata(previous_build_date=now)


def is_stale(path: Path, metadata: BuildMetadata) -> bool:
    """Whether path changed after the previous build; True when that cannot be told."""
    if metadata.previous_build_date is None:
        return True
    try:
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return True
    return modified > _aware(metadata.previous_build_date)


@contextmanager
def build_lock(path: Path) -> Iterator[Path]:
    """Hold the build lock sentinel at path for the duration of the block.

    Raises BuildInProgressError immediately if the sentinel already exists.
    The sentinel is removed on every exit path.
    """
    lock = SoftFileLock(str(path), timeout=0)
    try:
        lock.acquire()
    except Timeout:
        raise BuildInProgressError(path) from None
    try:
        yield path
    finally:
        lock.release()
