"""
Async loading of one entity: its manifest, then every component it needs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError

from app.config import ExportOptions
from app.exporting.errors import RetrievalError
from app.exporting.performance import PerformanceMonitor
from app.schemas.arke import (
    DESCRIPTION_COMPONENT,
    GRAPH_COMPONENT,
    PRIMARY_METADATA_COMPONENT,
    EntityManifest,
    LinkedEntities,
    RefDescriptor,
    RelationshipGraph,
    SourceMetadataRecord,
)

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """
    Blocking store interface; calls are dispatched to worker threads.
    """

    def fetch_manifest(self, pi: str) -> EntityManifest:
        ...

    def fetch_component_text(self, cid: str) -> str:
        ...

    def fetch_component_json(self, cid: str) -> Any:
        ...


class LinkedEntitySource(Protocol):
    def get_entities_for_pi(self, pi: str) -> LinkedEntities:
        ...


@dataclass(frozen=True)
class LoadedEntity:
    """
    Everything fetched for one entity. ``record`` is ``None`` when primary
    metadata is missing or unusable, with ``missing_reason`` saying why.
    """

    manifest: EntityManifest
    record: SourceMetadataRecord | None = None
    missing_reason: str | None = None
    description: str | None = None
    graph: RelationshipGraph | None = None
    ref_descriptors: dict[str, RefDescriptor] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.record is not None


class EntityLoader:
    def __init__(
        self,
        store: EntityStore,
        options: ExportOptions,
        *,
        linked_entities: LinkedEntitySource | None = None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self._store = store
        self._options = options
        self._linked_entities = linked_entities
        self._monitor = monitor

    async def load(self, pi: str) -> LoadedEntity:
        """
        Fetch the manifest exactly once, then its components concurrently.

        Manifest failures propagate as ``RetrievalError``; component failures
        are logged and the component is treated as absent.
        """

        manifest = await asyncio.to_thread(self._store.fetch_manifest, pi)

        (record, missing_reason), description, embedded_graph, linked_graph, refs = await asyncio.gather(
            self._load_record(manifest),
            self._load_description(manifest),
            self._load_embedded_graph(manifest),
            self._load_linked_graph(manifest),
            self._load_ref_descriptors(manifest),
        )

        graph = embedded_graph
        if graph is None:
            graph = linked_graph
        elif linked_graph is not None:
            graph = graph.merged_with(linked_graph)

        return LoadedEntity(
            manifest=manifest,
            record=record,
            missing_reason=missing_reason,
            description=description,
            graph=graph,
            ref_descriptors=refs,
        )

    async def _load_record(self, manifest: EntityManifest) -> tuple[SourceMetadataRecord | None, str | None]:
        cid = manifest.components.get(PRIMARY_METADATA_COMPONENT)
        if cid is None:
            return None, f"{PRIMARY_METADATA_COMPONENT} component is missing"
        try:
            payload = await asyncio.to_thread(self._store.fetch_component_json, cid)
        except RetrievalError as exc:
            logger.warning("Primary metadata unavailable pi=%s cid=%s error=%s", manifest.pi, cid, exc)
            return None, f"{PRIMARY_METADATA_COMPONENT} could not be retrieved: {exc}"
        try:
            return SourceMetadataRecord.model_validate(payload), None
        except ValidationError as exc:
            fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
            logger.warning("Primary metadata invalid pi=%s fields=%s", manifest.pi, fields)
            return None, f"{PRIMARY_METADATA_COMPONENT} is invalid (fields: {', '.join(fields)})"

    async def _load_description(self, manifest: EntityManifest) -> str | None:
        cid = manifest.components.get(DESCRIPTION_COMPONENT)
        if cid is None:
            return None
        try:
            return await asyncio.to_thread(self._store.fetch_component_text, cid)
        except RetrievalError as exc:
            logger.warning("Description unavailable pi=%s cid=%s error=%s", manifest.pi, cid, exc)
            return None

    async def _load_embedded_graph(self, manifest: EntityManifest) -> RelationshipGraph | None:
        if not self._options.uses_embedded_graph:
            return None
        cid = manifest.components.get(GRAPH_COMPONENT)
        if cid is None:
            return None
        try:
            payload = await asyncio.to_thread(self._store.fetch_component_json, cid)
            return RelationshipGraph.model_validate(payload)
        except (RetrievalError, ValidationError) as exc:
            logger.warning("Relationship graph unavailable pi=%s cid=%s error=%s", manifest.pi, cid, exc)
            return None

    async def _load_linked_graph(self, manifest: EntityManifest) -> RelationshipGraph | None:
        if not self._options.uses_graph_database or self._linked_entities is None:
            return None
        if self._monitor is not None:
            self._monitor.start_timer(f"graphdb:{manifest.pi}")
        try:
            linked = await asyncio.to_thread(self._linked_entities.get_entities_for_pi, manifest.pi)
        finally:
            if self._monitor is not None:
                self._monitor.record_timing("graphdb_fetch", self._monitor.stop_timer(f"graphdb:{manifest.pi}"))
        if not linked.entities:
            return None
        return linked.to_graph()

    async def _load_ref_descriptors(self, manifest: EntityManifest) -> dict[str, RefDescriptor]:
        keys = manifest.ref_component_keys
        if not keys:
            return {}
        results = await asyncio.gather(
            *(self._load_ref_descriptor(manifest, key) for key in keys),
        )
        return {key: descriptor for key, descriptor in zip(keys, results) if descriptor is not None}

    async def _load_ref_descriptor(self, manifest: EntityManifest, key: str) -> RefDescriptor | None:
        cid = manifest.components[key]
        try:
            payload = await asyncio.to_thread(self._store.fetch_component_json, cid)
            descriptor = RefDescriptor.model_validate(payload)
        except (RetrievalError, ValidationError) as exc:
            logger.warning("File descriptor unavailable pi=%s key=%s error=%s", manifest.pi, key, exc)
            return None
        if descriptor.ocr and self._options.include_ocr and self._monitor is not None:
            self._monitor.add_data_metric("ocr_text_size", len(descriptor.ocr))
        return descriptor
