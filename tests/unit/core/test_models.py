"""Unit tests for core/models.py"""

from workdb.core.models import (
    AnalyzedWork, LocalizedWorkContent, Link, Media, Paragraph, WorkMetadata,
)


def _work():
    return AnalyzedWork(
        id="alpha",
        metadata=WorkMetadata.model_validate({"tags": "one", "custom key": {"a": 1}}),
        localized={"en": LocalizedWorkContent(
            layout=[["p"], ["m", "l"]],
            blocks=[
                Paragraph(id="p", content="<p>x</p>"),
                Media(id="m", source="a.png", path="a.png", content_type="image/png"),
                Link(id="l", text="site", url="https://example.com"),
            ],
            title="Alpha",
        )},
    )


def test_analyzed_work_revalidates_from_json():
    """A dumped work loads back equal, blocks keeping their concrete types."""
    work = _work()
    loaded = AnalyzedWork.model_validate(work.model_dump(mode="json"))
    assert loaded == work
    assert [type(b) for b in loaded.localized["en"].blocks] == [Paragraph, Media, Link]


def test_work_metadata_additional_keys_survive_round_trip():
    metadata = WorkMetadata.model_validate({"custom key": 1})
    assert WorkMetadata.model_validate(metadata.model_dump()).additional_metadata == {"custom_key": 1}


def test_find_media_by_path():
    work = _work()
    assert work.find_media("a.png").id == "m"
    assert work.find_media("b.png") is None


def test_find_media_ignores_online():
    work = AnalyzedWork(id="w", localized={"en": LocalizedWorkContent(
        blocks=[Media(id="m", source="https://x.y/a.png", online=True)],
    )})
    assert work.find_media("") is None
