"""
Folds per-entity outcomes into an ``ExportSummary``.
"""

from __future__ import annotations

import time

from app.domain.traversal import EntityIssue, ExportOutcome, ExportSummary, OutcomeStatus, TraversalNode
from app.exporting.performance import PerformanceMonitor


class SummaryAggregator:
    """
    Not thread-safe; only the traversal coordinator calls ``record``.
    """

    def __init__(self, root_pi: str, output_location: str, *, monitor: PerformanceMonitor | None = None) -> None:
        self._root_pi = root_pi
        self._output_location = output_location
        self._monitor = monitor
        self._started = time.perf_counter()
        self._success = 0
        self._incomplete: list[EntityIssue] = []
        self._errors: list[EntityIssue] = []
        self._max_depth = 0
        self._cancelled = False

    @property
    def processed(self) -> int:
        return self._success + len(self._incomplete) + len(self._errors)

    @property
    def written(self) -> int:
        return self._success + len(self._incomplete)

    def record(self, node: TraversalNode, outcome: ExportOutcome) -> None:
        self._max_depth = max(self._max_depth, node.depth)
        if outcome.status == OutcomeStatus.SUCCESS:
            self._success += 1
        elif outcome.status == OutcomeStatus.INCOMPLETE:
            self._incomplete.append(
                EntityIssue(pi=node.pi, reason=outcome.reason or "incomplete record", depth=node.depth)
            )
        else:
            self._errors.append(EntityIssue(pi=node.pi, reason=outcome.reason or "unknown error", depth=node.depth))

    def mark_cancelled(self) -> None:
        self._cancelled = True

    def build(self) -> ExportSummary:
        peak_memory = 0
        timings: dict[str, float] = {}
        if self._monitor is not None:
            peak_memory = self._monitor.sample_memory()
            timings = self._monitor.timings()
        return ExportSummary(
            root_pi=self._root_pi,
            output_location=self._output_location,
            success_count=self._success,
            incomplete_count=len(self._incomplete),
            error_count=len(self._errors),
            errors=tuple(self._errors),
            incomplete=tuple(self._incomplete),
            elapsed_seconds=time.perf_counter() - self._started,
            peak_memory_bytes=peak_memory,
            max_depth_reached=self._max_depth,
            cancelled=self._cancelled,
            timings=timings,
        )
