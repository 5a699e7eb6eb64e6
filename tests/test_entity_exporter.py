"""
Single-entity loading and document assembly.
"""

from __future__ import annotations

import asyncio

import pytest

from app.config import ArkeSettings, ExportOptions
from app.exporting.entity_exporter import EntityExporter
from app.exporting.entity_loader import EntityLoader
from app.exporting.errors import EntityNotFoundError
from app.exporting.performance import PerformanceMonitor
from app.exporting.text_utils import TRUNCATION_MARKER
from app.mappers.component_linker import ComponentLinker
from app.mappers.crosswalk import PinaxModsCrosswalk
from app.schemas.arke import LinkedEntities
from tests.conftest import FakeStore

GRAPH = {
    "entities": {
        "ada": {"type": "person", "label": "Ada Lovelace", "properties": {"role": "author"}},
        "ldn": {"type": "place", "label": "London"},
    },
    "relations": [{"source": "ada", "target": "ldn", "type": "lived_in"}],
}


class FakeLinkedEntities:
    def __init__(self, payload: dict) -> None:
        self.calls: list[str] = []
        self._payload = payload

    def get_entities_for_pi(self, pi: str) -> LinkedEntities:
        self.calls.append(pi)
        return LinkedEntities.model_validate(self._payload)


def _exporter(store: FakeStore, options: ExportOptions, linked=None, monitor=None) -> EntityExporter:
    settings = ArkeSettings()
    loader = EntityLoader(store, options, linked_entities=linked, monitor=monitor)
    return EntityExporter(
        loader,
        PinaxModsCrosswalk(settings),
        ComponentLinker(settings, options),
        options,
        monitor=monitor,
    )


def _full_store() -> FakeStore:
    store = FakeStore()
    store.add_entity(
        "R",
        children=("A", "B"),
        extra_components={
            "description.md": "cid-desc",
            "cheimarros.json": "cid-graph",
            "page1.jpg.ref.json": "cid-ref",
        },
    )
    store.text_components["cid-desc"] = "Line one\r\n\r\n\r\nLine two " + "word " * 40
    store.json_components["cid-graph"] = GRAPH
    store.json_components["cid-ref"] = {
        "url": "https://cdn.arke.institute/asset/page1",
        "ipfs_cid": "cid-page1",
        "type": "image/jpeg",
        "size": 1024,
        "filename": "page1.jpg",
        "ocr": "Dear Charles",
    }
    return store


class TestEntityExporter:
    def test_full_record_combines_all_sources(self) -> None:
        exporter = _exporter(_full_store(), ExportOptions())

        document = exporter.build_document(asyncio.run(exporter._loader.load("R")))

        assert document.abstract.startswith("Line one\n\nLine two")
        assert [name.names[0].parts for name in document.subjects if name.names] == [("Ada Lovelace",)]
        assert ("London",) in [subject.geographic for subject in document.subjects]
        note_types = [note.type for note in document.notes]
        assert "cheimarros-relation" in note_types
        assert "cheimarros-property" in note_types
        assert note_types[-1] == "component-inventory"
        labels = [item.display_label for item in document.related_items]
        assert labels == ["page1.jpg", "Child Entity 1", "Child Entity 2"]
        assert document.related_items[0].notes[0].text == "Dear Charles"

    def test_description_is_truncated_to_max_text_length(self) -> None:
        exporter = _exporter(_full_store(), ExportOptions(max_text_length=40))

        export = asyncio.run(exporter.export_entity("R"))

        assert export.incomplete is False
        assert export.children == ("A", "B")
        assert TRUNCATION_MARKER.strip() in export.xml

    def test_skip_mode_drops_graph_annotations(self) -> None:
        store = _full_store()
        exporter = _exporter(store, ExportOptions(graph_mode="skip"))

        document = exporter.build_document(asyncio.run(exporter._loader.load("R")))

        assert not [note for note in document.notes if note.type and note.type.startswith("cheimarros")]
        assert not [subject for subject in document.subjects if subject.names]

    def test_missing_optional_components_are_tolerated(self) -> None:
        store = _full_store()
        del store.text_components["cid-desc"]
        store.json_components["cid-graph"] = {"entities": "not-a-mapping"}
        del store.json_components["cid-ref"]
        exporter = _exporter(store, ExportOptions())

        entity = asyncio.run(exporter._loader.load("R"))

        assert entity.is_complete
        assert entity.description is None
        assert entity.graph is None
        assert entity.ref_descriptors == {}

    def test_degraded_record_keeps_links_without_annotations(self) -> None:
        store = FakeStore()
        store.add_entity(
            "R",
            parent="P",
            children=("A",),
            with_record=False,
            extra_components={"cheimarros.json": "cid-graph"},
        )
        store.json_components["cid-graph"] = GRAPH
        exporter = _exporter(store, ExportOptions())

        export = asyncio.run(exporter.export_entity("R"))
        document = exporter.build_document(asyncio.run(exporter._loader.load("R")))

        assert export.incomplete is True
        assert export.children == ("A",)
        assert [item.type for item in document.related_items] == ["host", "constituent"]
        assert [note.type for note in document.notes] == ["incomplete", "remediation"]
        assert document.subjects == ()

    def test_graph_database_entities_merge_with_embedded_graph(self) -> None:
        store = _full_store()
        linked = FakeLinkedEntities(
            {
                "entities": [
                    {"canonical_id": "u1", "code": "ada", "label": "A. Lovelace", "entity_type": "person"},
                    {"canonical_id": "u2", "code": "inst", "label": "Royal Society", "entity_type": "organization"},
                ],
                "relationships": [],
            }
        )
        monitor = PerformanceMonitor()
        exporter = _exporter(store, ExportOptions(entity_source="both"), linked=linked, monitor=monitor)

        entity = asyncio.run(exporter._loader.load("R"))

        assert linked.calls == ["R"]
        assert entity.graph.entities["ada"].label == "Ada Lovelace"
        assert entity.graph.entities["inst"].label == "Royal Society"
        assert "graphdb_fetch" in monitor.timings()
        assert monitor.data()["ocr_text_size"] == len("Dear Charles")

    def test_cheimarros_only_source_ignores_graph_database(self) -> None:
        linked = FakeLinkedEntities({"entities": [], "relationships": []})
        exporter = _exporter(_full_store(), ExportOptions(entity_source="cheimarros"), linked=linked)

        asyncio.run(exporter._loader.load("R"))

        assert linked.calls == []

    def test_manifest_is_fetched_once_per_export(self) -> None:
        store = _full_store()
        exporter = _exporter(store, ExportOptions())

        asyncio.run(exporter.export_entity("R"))

        assert store.manifest_calls["R"] == 1

    def test_missing_entity_raises_not_found(self) -> None:
        exporter = _exporter(FakeStore(), ExportOptions())

        with pytest.raises(EntityNotFoundError):
            asyncio.run(exporter.export_single("NOPE"))
