"""
Crosswalk from primary metadata to MODS documents, including degraded records.
"""

from __future__ import annotations

import pytest

from app.config import ArkeSettings
from app.mappers.crosswalk import PinaxModsCrosswalk, map_language, map_resource_type
from app.schemas.arke import SourceMetadataRecord
from tests.conftest import FIXED_NOW, build_manifest, pinax_payload


@pytest.fixture()
def crosswalk(fixed_clock) -> PinaxModsCrosswalk:
    return PinaxModsCrosswalk(ArkeSettings(), clock=fixed_clock)


# ---------------------------------------------------------------------------
# Vocabulary mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("source_type", "expected"),
    [
        ("Text", "text"),
        ("StillImage", "still image"),
        ("Collection", "mixed material"),
        ("PhysicalObject", "three dimensional object"),
        ("Unheard", "text"),
        (None, "text"),
    ],
)
def test_map_resource_type(source_type, expected) -> None:
    assert map_resource_type(source_type) == expected


@pytest.mark.parametrize(
    ("tag", "expected"),
    [
        ("en", "eng"),
        ("en-GB", "eng"),
        ("fr", "fre"),
        ("nl-BE", "nl-"),
        ("", None),
        (None, None),
    ],
)
def test_map_language(tag, expected) -> None:
    assert map_language(tag) == expected


# ---------------------------------------------------------------------------
# Full records
# ---------------------------------------------------------------------------


class TestFullCrosswalk:
    def test_core_fields_are_mapped(self, crosswalk) -> None:
        record = SourceMetadataRecord.model_validate(
            pinax_payload(
                "01ROOT",
                creator=["Ada Lovelace", "Charles Babbage"],
                language="en",
                subjects=["Mathematics", "  "],
                place="London",
                rights="Public domain",
                source="Legacy catalogue",
            )
        )
        manifest = build_manifest("01ROOT")

        document = crosswalk.crosswalk(record, manifest)

        assert document.titles[0].title == "Letters of 01ROOT"
        assert [name.parts[0] for name in document.names] == [
            "Ada Lovelace",
            "Charles Babbage",
            "Example Archive",
        ]
        assert document.names[-1].name_type == "corporate"
        assert document.type_of_resource == "text"
        assert document.origin_info.date_created == "1843-07-10"
        assert document.languages[0].code == "eng"
        assert [subject.topics for subject in document.subjects if subject.topics] == [("Mathematics",)]
        assert [subject.geographic for subject in document.subjects if subject.geographic] == [("London",)]
        assert document.access_conditions[0].text == "Public domain"
        assert document.record_info.description_standard == "pinax"
        assert document.record_info.identifier == "01ROOT"

    def test_placeholder_access_url_falls_back_to_web_url(self, crosswalk) -> None:
        record = SourceMetadataRecord.model_validate(pinax_payload("01ROOT"))

        document = crosswalk.crosswalk(record, build_manifest("01ROOT"))

        uri = next(identifier for identifier in document.identifiers if identifier.type == "uri")
        assert uri.value == "https://arke.institute/01ROOT"
        assert document.location.urls[0].url == "https://arke.institute/01ROOT"
        assert document.location.urls[1].url == "https://ipfs.arke.institute/ipfs/bafy-manifest-01ROOT"

    def test_description_component_takes_the_abstract(self, crosswalk) -> None:
        record = SourceMetadataRecord.model_validate(pinax_payload("01ROOT", description="Short summary"))

        document = crosswalk.crosswalk(record, build_manifest("01ROOT"), "Long form description")

        assert document.abstract == "Long form description"
        summary_notes = [note for note in document.notes if note.type == "summary"]
        assert summary_notes and summary_notes[0].text == "Short summary"

    def test_record_description_used_without_component(self, crosswalk) -> None:
        record = SourceMetadataRecord.model_validate(pinax_payload("01ROOT", description="Short summary"))

        document = crosswalk.crosswalk(record, build_manifest("01ROOT"), "   ")

        assert document.abstract == "Short summary"
        assert not [note for note in document.notes if note.type == "summary"]

    def test_blank_rights_and_source_are_omitted(self, crosswalk) -> None:
        blank = SourceMetadataRecord.model_validate(pinax_payload("01ROOT", rights="  ", source="\t"))
        filled = SourceMetadataRecord.model_validate(pinax_payload("01ROOT", rights="CC BY 4.0", source="Omeka"))

        blank_document = crosswalk.crosswalk(blank, build_manifest("01ROOT"))
        filled_document = crosswalk.crosswalk(filled, build_manifest("01ROOT"))

        assert blank_document.access_conditions == ()
        assert not [note for note in blank_document.notes if note.type == "source"]
        assert [condition.text for condition in filled_document.access_conditions] == ["CC BY 4.0"]
        assert [note.text for note in filled_document.notes if note.type == "source"] == ["Omeka"]

    def test_version_note_carries_manifest_cid(self, crosswalk) -> None:
        record = SourceMetadataRecord.model_validate(pinax_payload("01ROOT"))

        document = crosswalk.crosswalk(record, build_manifest("01ROOT", ver=3))

        version = document.notes[0]
        assert version.type == "version"
        assert "Version 3" in version.text
        assert "bafy-manifest-01ROOT" in version.text


# ---------------------------------------------------------------------------
# Degraded records
# ---------------------------------------------------------------------------


class TestDegradedCrosswalk:
    def test_title_contains_identifier(self, crosswalk) -> None:
        document = crosswalk.degraded(build_manifest("01ORPHAN", components={}))

        assert document.titles[0].title == "[Incomplete Record] 01ORPHAN"
        assert document.titles[0].type == "alternative"

    def test_incomplete_note_and_reason(self, crosswalk) -> None:
        document = crosswalk.degraded(build_manifest("01ORPHAN"), "pinax.json is invalid (fields: title)")

        incomplete = [note for note in document.notes if note.type == "incomplete"]
        assert len(incomplete) == 1
        assert "This record is incomplete" in incomplete[0].text
        assert "pinax.json is invalid" in incomplete[0].text
        assert any(note.type == "remediation" for note in document.notes)

    def test_record_info_uses_export_clock(self, crosswalk) -> None:
        document = crosswalk.degraded(build_manifest("01ORPHAN"))

        assert document.record_info.creation_date == FIXED_NOW.isoformat()
        assert document.record_info.origin.startswith("Generated via graceful degradation")
        assert {identifier.type for identifier in document.identifiers} == {"arke-pi", "ipfs-cid"}
