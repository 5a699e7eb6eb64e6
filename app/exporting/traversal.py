"""
Breadth-first traversal with level barriers and bounded batch concurrency.

Only the coordinating task touches the queue, the visited set and the
aggregator. Per-entity tasks receive an immutable ``TraversalNode`` and
return an ``ExportOutcome`` that is folded in after their batch settles.

Within a batch, records reach the writer in completion order, which varies
with fetch latency. Only grouping by depth is guaranteed in the output.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Iterator, Protocol

from app.domain.traversal import ExportOutcome, ExportSummary, OutcomeStatus, ProgressEvent, TraversalNode
from app.exporting.aggregator import SummaryAggregator
from app.exporting.collection_writer import CollectionWriter
from app.exporting.entity_exporter import EntityExport
from app.exporting.errors import SinkError
from app.exporting.performance import PerformanceMonitor
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]
StopCheck = Callable[[], bool]


class RecordProducer(Protocol):
    async def export_entity(self, pi: str) -> EntityExport:
        ...


def extract_level(queue: deque[TraversalNode]) -> list[TraversalNode]:
    """
    Pop the contiguous run of front nodes sharing the front node's depth.
    """

    if not queue:
        return []
    depth = queue[0].depth
    level: list[TraversalNode] = []
    while queue and queue[0].depth == depth:
        level.append(queue.popleft())
    return level


def chunked(nodes: list[TraversalNode], size: int) -> Iterator[list[TraversalNode]]:
    for start in range(0, len(nodes), size):
        yield nodes[start : start + size]


class TraversalController:
    def __init__(
        self,
        producer: RecordProducer,
        writer: CollectionWriter,
        *,
        max_depth: int,
        batch_size: int,
        verbose: bool = True,
        monitor: PerformanceMonitor | None = None,
        on_progress: ProgressCallback | None = None,
        should_stop: StopCheck | None = None,
    ) -> None:
        self._producer = producer
        self._writer = writer
        self._max_depth = max(0, max_depth)
        self._batch_size = max(1, batch_size)
        self._verbose = verbose
        self._monitor = monitor
        self._on_progress = on_progress
        self._should_stop = should_stop

    async def traverse(self, root_pi: str) -> ExportSummary:
        """
        Walk the tree below ``root_pi`` and stream every record to the writer.

        The writer must already be open. Only ``SinkError`` (or cancellation)
        escapes; every other per-entity failure is recorded in the summary.
        """

        aggregator = SummaryAggregator(root_pi, self._writer.location or "", monitor=self._monitor)
        queue: deque[TraversalNode] = deque([TraversalNode.root(root_pi)])
        visited = {root_pi}

        while queue:
            level = extract_level(queue)
            depth = level[0].depth
            if self._verbose:
                log_event(logger, logging.INFO, "export_level_started", depth=depth, entities=len(level))

            for batch in chunked(level, self._batch_size):
                if self._should_stop is not None and self._should_stop():
                    aggregator.mark_cancelled()
                    logger.warning("Export cancelled root_pi=%s processed=%s", root_pi, aggregator.processed)
                    return aggregator.build()

                if self._verbose:
                    log_event(logger, logging.INFO, "export_batch_started", depth=depth, size=len(batch))
                outcomes = await self._run_batch(batch)

                for node, outcome in zip(batch, outcomes):
                    aggregator.record(node, outcome)
                    if outcome.written and node.depth < self._max_depth:
                        for child_pi in outcome.children:
                            if child_pi not in visited:
                                visited.add(child_pi)
                                queue.append(node.child(child_pi))
                    self._report(node, outcome, aggregator.processed)

                if self._monitor is not None:
                    self._monitor.sample_memory()

        return aggregator.build()

    async def _run_batch(self, batch: list[TraversalNode]) -> list[ExportOutcome]:
        """
        Run one batch to completion; a fatal failure is re-raised only after all siblings settle.
        """

        results = await asyncio.gather(*(self._process(node) for node in batch), return_exceptions=True)
        outcomes: list[ExportOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            outcomes.append(result)
        return outcomes

    async def _process(self, node: TraversalNode) -> ExportOutcome:
        try:
            export = await self._producer.export_entity(node.pi)
            await self._writer.write(node.pi, export.xml, node)
        except SinkError:
            raise
        except Exception as exc:
            return ExportOutcome.error(node.pi, str(exc) or type(exc).__name__)

        if export.incomplete:
            return ExportOutcome(
                pi=node.pi,
                status=OutcomeStatus.INCOMPLETE,
                children=export.children,
                reason=export.reason,
            )
        return ExportOutcome(pi=node.pi, status=OutcomeStatus.SUCCESS, children=export.children)

    def _report(self, node: TraversalNode, outcome: ExportOutcome, processed: int) -> None:
        if outcome.status == OutcomeStatus.ERROR:
            log_event(
                logger,
                logging.ERROR,
                "export_entity_failed",
                pi=node.pi,
                depth=node.depth,
                reason=outcome.reason,
            )
        elif self._verbose:
            log_event(
                logger,
                logging.INFO,
                "export_entity_completed",
                pi=node.pi,
                depth=node.depth,
                status=outcome.status,
                children=len(outcome.children),
            )

        if self._on_progress is not None:
            self._on_progress(
                ProgressEvent(current=processed, pi=node.pi, depth=node.depth, status=outcome.status)
            )
