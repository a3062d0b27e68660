"""Unit tests for crud/database.py"""

import io
import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from workdb.core.models import AnalyzedWork, BuildMetadata, LocalizedWorkContent, Paragraph
from workdb.crud.database import (
    BUILD_METADATA_FILENAME, STDOUT, advance_build_metadata, build_lock, build_metadata_path,
    dump_database, is_stale, load_build_metadata, load_database, output_directory,
    write_build_metadata, write_database,
)
from workdb.errors import BuildInProgressError
from workdb.reporting import Reporter


@pytest.fixture(name="works")
def works_fixture():
    """A single-work database."""
    return {"alpha": AnalyzedWork(id="alpha", localized={"en": LocalizedWorkContent(
        layout=[["abcde"]],
        blocks=[Paragraph(id="abcde", content="<p>Héllo</p>")],
        title="Alpha",
    )})}


# --- paths ---

def test_output_directory(tmp_path):
    assert output_directory(str(tmp_path / "db.json")) == tmp_path


def test_output_directory_stdout(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert output_directory(STDOUT) == tmp_path


def test_build_metadata_path(tmp_path):
    """Build metadata sits beside the output unless configured."""
    output = str(tmp_path / "db.json")
    assert build_metadata_path(output) == tmp_path / BUILD_METADATA_FILENAME
    assert build_metadata_path(output, "elsewhere/meta.json").as_posix() == "elsewhere/meta.json"


# --- database ---

def test_write_then_load_database(tmp_path, works):
    output = str(tmp_path / "db.json")
    write_database(works, output)
    assert load_database(output) == works


def test_load_database_missing(tmp_path):
    assert load_database(str(tmp_path / "missing.json")) == {}


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"alpha": {"metadata": {}}}'])
def test_load_database_unusable(tmp_path, content):
    """An unusable previous database is ignored with a warning."""
    path = tmp_path / "db.json"
    path.write_text(content)
    reporter = Reporter()
    assert load_database(str(path), reporter) == {}
    assert reporter.warnings == 1


def test_write_database_stdout(works):
    """'-' writes to the given stream instead of a file."""
    stream = io.StringIO()
    write_database(works, STDOUT, stream=stream)
    assert json.loads(stream.getvalue())["alpha"]["id"] == "alpha"


def test_dump_database_pretty_and_minified(works):
    pretty = dump_database(works)
    minified = dump_database(works, minified=True)
    assert '\n    "alpha"' in pretty
    assert "\n" not in minified
    assert json.loads(pretty) == json.loads(minified)
    assert "Héllo" in minified


def test_dump_database_field_order(works):
    """Works serialize their fields in a stable order."""
    data = json.loads(dump_database(works))
    assert list(data["alpha"]) == ["id", "metadata", "localized"]
    assert list(data["alpha"]["localized"]["en"]) == ["layout", "blocks", "title", "footnotes"]


def test_write_database_leaves_no_temp_files(tmp_path, works):
    write_database(works, str(tmp_path / "db.json"))
    assert [p.name for p in tmp_path.iterdir()] == ["db.json"]


# --- build metadata ---

def test_build_metadata_missing_means_never_built(tmp_path):
    assert load_build_metadata(tmp_path / "meta.json").previous_build_date is None


def test_build_metadata_round_trip(tmp_path):
    path = tmp_path / "meta.json"
    metadata = BuildMetadata(previous_build_date=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    write_build_metadata(path, metadata)
    assert load_build_metadata(path) == metadata


def test_build_metadata_corrupt(tmp_path):
    path = tmp_path / "meta.json"
    path.write_text("garbage")
    assert load_build_metadata(path).previous_build_date is None


def test_advance_build_metadata_strictly_increases():
    """A clock that did not move still yields a later stamp."""
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    previous = BuildMetadata(previous_build_date=now)
    assert advance_build_metadata(previous, now).previous_build_date > now
    earlier = now - timedelta(hours=1)
    assert advance_build_metadata(previous, earlier).previous_build_date > now


def test_advance_build_metadata_uses_now():
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert advance_build_metadata(BuildMetadata(), now).previous_build_date == now


# --- staleness ---

def _set_mtime(path, moment):
    os.utime(path, (moment.timestamp(), moment.timestamp()))


def test_is_stale(tmp_path):
    built = datetime(2024, 5, 1, tzinfo=timezone.utc)
    metadata = BuildMetadata(previous_build_date=built)
    path = tmp_path / "description.md"
    path.write_text("x")

    _set_mtime(path, built - timedelta(days=1))
    assert not is_stale(path, metadata)
    _set_mtime(path, built + timedelta(days=1))
    assert is_stale(path, metadata)


def test_is_stale_never_built_or_missing(tmp_path):
    path = tmp_path / "description.md"
    path.write_text("x")
    assert is_stale(path, BuildMetadata())
    recent = BuildMetadata(previous_build_date=datetime.now(timezone.utc))
    assert is_stale(tmp_path / "missing.md", recent)


# --- lock ---

def test_build_lock_created_and_removed(tmp_path):
    path = tmp_path / ".lock"
    with build_lock(path):
        assert path.exists()
    assert not path.exists()


def test_build_lock_rejects_concurrent_build(tmp_path):
    """A second build fails immediately while the lock is held."""
    path = tmp_path / ".lock"
    with build_lock(path):
        with pytest.raises(BuildInProgressError):
            with build_lock(path):
                pass
        assert path.exists()


def test_build_lock_existing_sentinel(tmp_path):
    """A leftover sentinel file is not reclaimed."""
    path = tmp_path / ".lock"
    path.write_text("")
    with pytest.raises(BuildInProgressError):
        with build_lock(path):
            pass
    assert path.exists()


def test_build_lock_released_on_error(tmp_path):
    path = tmp_path / ".lock"
    with pytest.raises(RuntimeError):
        with build_lock(path):
            raise RuntimeError("boom")
    assert not path.exists()
