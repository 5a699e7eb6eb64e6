"""
app/services/export_service.py

Wires store clients, mappers, writer and traversal into one export run.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Callable

from app.config import (
    ArkeSettings,
    ExportOptions,
    ExternalHTTPSettings,
    get_arke_settings,
    get_external_http_settings,
)
from app.connectors.arke_client import ArkeStoreClient
from app.connectors.graphdb_client import GraphDBClient
from app.domain.traversal import EntityIssue, ExportSummary, ProgressEvent
from app.exporting.collection_writer import CollectionWriter
from app.exporting.entity_exporter import EntityExporter
from app.exporting.entity_loader import EntityLoader, EntityStore, LinkedEntitySource
from app.exporting.performance import PerformanceMonitor
from app.exporting.sinks import FileSink, RecordSink
from app.exporting.traversal import TraversalController
from app.logging_utils import log_event
from app.mappers.component_linker import ComponentLinker
from app.mappers.crosswalk import PinaxModsCrosswalk

logger = logging.getLogger(__name__)


class ExportService:
    """
    Runs recursive collection exports and single-record exports.

    ``store`` and ``linked_entities`` default to live HTTP clients created per run.
    """

    def __init__(
        self,
        *,
        settings: ArkeSettings | None = None,
        http_settings: ExternalHTTPSettings | None = None,
        store: EntityStore | None = None,
        linked_entities: LinkedEntitySource | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or get_arke_settings()
        self._http_settings = http_settings or get_external_http_settings()
        self._store = store
        self._linked_entities = linked_entities
        self._clock = clock

    def run_export(
        self,
        root_pi: str,
        output: str | Path | RecordSink,
        options: ExportOptions,
        *,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> ExportSummary:
        """
        Synchronous entrypoint for scripts and background tasks.
        """

        return asyncio.run(
            self.arun_export(root_pi, output, options, on_progress=on_progress, should_stop=should_stop)
        )

    async def arun_export(
        self,
        root_pi: str,
        output: str | Path | RecordSink,
        options: ExportOptions,
        *,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> ExportSummary:
        """
        Export the tree below ``root_pi`` as one collection document.

        Raises ``SinkError`` when the output cannot be opened, written or closed.
        """

        monitor = PerformanceMonitor()
        sink = output if isinstance(output, RecordSink) else FileSink(output)
        writer = CollectionWriter()
        owned_clients: list[ArkeStoreClient | GraphDBClient] = []
        exporter = self._build_exporter(options, monitor, owned_clients)

        log_event(
            logger,
            logging.INFO,
            "export_started",
            root_pi=root_pi,
            output=sink.location,
            options=options.to_dict(),
        )
        try:
            await writer.open(sink)
            controller = TraversalController(
                exporter,
                writer,
                max_depth=options.max_depth,
                batch_size=options.batch_size,
                verbose=options.verbose,
                monitor=monitor,
                on_progress=on_progress,
                should_stop=should_stop,
            )
            summary = await controller.traverse(root_pi)
        finally:
            try:
                await writer.close()
            finally:
                for client in owned_clients:
                    client.close()

        monitor.add_data_metric("output_bytes", writer.chars_written)
        self._log_summary(summary, writer.records_written)
        if options.verbose:
            logger.info("\n%s", monitor.format_report())
        return summary

    async def aexport_single(
        self,
        pi: str,
        output: str | Path | RecordSink,
        options: ExportOptions,
    ) -> ExportSummary:
        """
        Export one entity as a standalone MODS document.

        Unlike a traversal, a retrieval failure of the entity propagates.
        """

        monitor = PerformanceMonitor()
        sink = output if isinstance(output, RecordSink) else FileSink(output)
        owned_clients: list[ArkeStoreClient | GraphDBClient] = []
        exporter = self._build_exporter(options, monitor, owned_clients)
        try:
            export = await exporter.export_single(pi)
        finally:
            for client in owned_clients:
                client.close()

        await sink.open()
        try:
            sink.write(export.xml)
            await sink.drain()
        finally:
            await sink.close()

        incomplete: tuple[EntityIssue, ...] = ()
        if export.incomplete:
            incomplete = (EntityIssue(pi=pi, reason=export.reason or "incomplete record"),)
        summary = ExportSummary(
            root_pi=pi,
            output_location=sink.location,
            success_count=0 if export.incomplete else 1,
            incomplete_count=1 if export.incomplete else 0,
            incomplete=incomplete,
            elapsed_seconds=monitor.elapsed_seconds,
            peak_memory_bytes=monitor.sample_memory(),
            timings=monitor.timings(),
        )
        self._log_summary(summary, 1)
        return summary

    def export_single(self, pi: str, output: str | Path | RecordSink, options: ExportOptions) -> ExportSummary:
        return asyncio.run(self.aexport_single(pi, output, options))

    def _build_exporter(
        self,
        options: ExportOptions,
        monitor: PerformanceMonitor,
        owned_clients: list[ArkeStoreClient | GraphDBClient],
    ) -> EntityExporter:
        store = self._store
        if store is None:
            client = ArkeStoreClient(settings=self._settings, http_settings=self._http_settings, monitor=monitor)
            owned_clients.append(client)
            store = client

        linked_entities = self._linked_entities
        if linked_entities is None and options.uses_graph_database:
            graph_client = GraphDBClient(settings=self._settings, http_settings=self._http_settings)
            owned_clients.append(graph_client)
            linked_entities = graph_client

        loader = EntityLoader(store, options, linked_entities=linked_entities, monitor=monitor)
        return EntityExporter(
            loader,
            PinaxModsCrosswalk(self._settings, clock=self._clock),
            ComponentLinker(self._settings, options),
            options,
            monitor=monitor,
        )

    @staticmethod
    def _log_summary(summary: ExportSummary, records_written: int) -> None:
        log_event(
            logger,
            logging.INFO,
            "export_summary",
            root_pi=summary.root_pi,
            output=summary.output_location,
            total=summary.total_entities,
            success=summary.success_count,
            incomplete=summary.incomplete_count,
            errors=summary.error_count,
            records_written=records_written,
            cancelled=summary.cancelled,
            elapsed_seconds=round(summary.elapsed_seconds, 3),
        )
        if summary.errors:
            logger.warning(
                "Export finished with %s failed entities: %s",
                summary.error_count,
                ", ".join(issue.pi for issue in summary.errors[:10]),
            )


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    return ExportService()
