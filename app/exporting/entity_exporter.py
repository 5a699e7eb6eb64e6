"""
Single-entity export: load, crosswalk, annotate, link and render.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from app.config import ExportOptions
from app.domain.mods import ModsDocument
from app.exporting.entity_loader import EntityLoader, LoadedEntity
from app.exporting.mods_generator import render
from app.exporting.performance import PerformanceMonitor
from app.exporting.text_utils import normalize_text, truncate_text
from app.mappers.component_linker import ComponentLinker
from app.mappers.crosswalk import PinaxModsCrosswalk
from app.mappers.graph_annotator import annotate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityExport:
    """
    Rendered record of one entity plus what the traversal needs next.
    """

    pi: str
    xml: str
    children: tuple[str, ...]
    incomplete: bool = False
    reason: str | None = None


class EntityExporter:
    def __init__(
        self,
        loader: EntityLoader,
        crosswalk: PinaxModsCrosswalk,
        linker: ComponentLinker,
        options: ExportOptions,
        *,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self._loader = loader
        self._crosswalk = crosswalk
        self._linker = linker
        self._options = options
        self._monitor = monitor

    async def export_entity(self, pi: str) -> EntityExport:
        """
        Export one entity. ``RetrievalError`` from the manifest fetch propagates.
        """

        entity = await self._loader.load(pi)
        started = time.perf_counter()
        document = self.build_document(entity)
        xml = render(document)
        if self._monitor is not None:
            self._monitor.record_timing("transform", time.perf_counter() - started)
        return EntityExport(
            pi=entity.manifest.pi,
            xml=xml,
            children=entity.manifest.children_pi,
            incomplete=not entity.is_complete,
            reason=entity.missing_reason,
        )

    async def export_single(self, pi: str) -> EntityExport:
        """
        Standalone export of one entity without traversal.
        """

        export = await self.export_entity(pi)
        if self._monitor is not None:
            self._monitor.add_data_metric("output_bytes", len(export.xml.encode("utf-8")))
        if export.incomplete:
            logger.warning("Exported incomplete record pi=%s reason=%s", pi, export.reason)
        else:
            logger.info("Exported record pi=%s children=%s", pi, len(export.children))
        return export

    def build_document(self, entity: LoadedEntity) -> ModsDocument:
        """
        Degraded records get cross-references but no graph annotations or extra notes.
        """

        links = self._linker.link(entity.manifest, entity.ref_descriptors)
        if entity.record is None:
            document = self._crosswalk.degraded(entity.manifest, entity.missing_reason)
            return document.with_additions(related_items=links.related_items)

        description = None
        if entity.description is not None:
            description = truncate_text(
                normalize_text(entity.description),
                self._options.max_text_length,
            ).text
        document = self._crosswalk.crosswalk(entity.record, entity.manifest, description)
        annotation = annotate(entity.graph, self._options.graph_mode)
        return document.with_additions(
            subjects=(*annotation.subjects, *annotation.name_subjects()),
            notes=(*annotation.notes, *links.notes),
            related_items=links.related_items,
        )
