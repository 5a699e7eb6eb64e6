"""
app/domain/traversal.py

Domain models for tree traversal and per-entity export outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class OutcomeStatus:
    SUCCESS = "success"
    INCOMPLETE = "incomplete"
    ERROR = "error"


@dataclass(frozen=True)
class TraversalNode:
    """
    Immutable snapshot of one queued entity.
    """

    pi: str
    depth: int
    parent_pi: str | None = None
    path: tuple[str, ...] = ()

    @classmethod
    def root(cls, pi: str) -> "TraversalNode":
        return cls(pi=pi, depth=0, parent_pi=None, path=(pi,))

    def child(self, pi: str) -> "TraversalNode":
        return TraversalNode(
            pi=pi,
            depth=self.depth + 1,
            parent_pi=self.pi,
            path=(*self.path, pi),
        )


@dataclass(frozen=True)
class ExportOutcome:
    """
    Per-entity result folded into the summary by the traversal coordinator.

    ``children`` is populated for both ``success`` and ``incomplete`` outcomes.
    """

    pi: str
    status: str
    children: tuple[str, ...] = ()
    reason: str | None = None

    @classmethod
    def error(cls, pi: str, reason: str) -> "ExportOutcome":
        return cls(pi=pi, status=OutcomeStatus.ERROR, reason=reason)

    @property
    def written(self) -> bool:
        return self.status != OutcomeStatus.ERROR


@dataclass(frozen=True)
class EntityIssue:
    pi: str
    reason: str
    depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"pi": self.pi, "reason": self.reason, "depth": self.depth}


@dataclass(frozen=True)
class ExportSummary:
    """
    Aggregate result of one export job.

    ``success_count``, ``incomplete_count`` and ``error_count`` are disjoint and
    always add up to ``total_entities``. Incomplete records are present in the
    output; error records are not.
    """

    root_pi: str
    output_location: str
    success_count: int = 0
    incomplete_count: int = 0
    error_count: int = 0
    errors: tuple[EntityIssue, ...] = ()
    incomplete: tuple[EntityIssue, ...] = ()
    elapsed_seconds: float = 0.0
    peak_memory_bytes: int = 0
    max_depth_reached: int = 0
    cancelled: bool = False
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def total_entities(self) -> int:
        return self.success_count + self.incomplete_count + self.error_count

    @property
    def exported_count(self) -> int:
        return self.success_count + self.incomplete_count

    def merge(self, other: "ExportSummary") -> "ExportSummary":
        """
        Combine two summaries (e.g. of sibling sub-jobs) into one.
        """

        timings = dict(self.timings)
        for key, value in other.timings.items():
            timings[key] = timings.get(key, 0.0) + value
        return ExportSummary(
            root_pi=self.root_pi,
            output_location=self.output_location,
            success_count=self.success_count + other.success_count,
            incomplete_count=self.incomplete_count + other.incomplete_count,
            error_count=self.error_count + other.error_count,
            errors=(*self.errors, *other.errors),
            incomplete=(*self.incomplete, *other.incomplete),
            elapsed_seconds=self.elapsed_seconds + other.elapsed_seconds,
            peak_memory_bytes=max(self.peak_memory_bytes, other.peak_memory_bytes),
            max_depth_reached=max(self.max_depth_reached, other.max_depth_reached),
            cancelled=self.cancelled or other.cancelled,
            timings=timings,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_pi": self.root_pi,
            "output_location": self.output_location,
            "total_entities": self.total_entities,
            "success_count": self.success_count,
            "incomplete_count": self.incomplete_count,
            "error_count": self.error_count,
            "errors": [issue.to_dict() for issue in self.errors],
            "incomplete": [issue.to_dict() for issue in self.incomplete],
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "peak_memory_bytes": self.peak_memory_bytes,
            "max_depth_reached": self.max_depth_reached,
            "cancelled": self.cancelled,
            "timings": {key: round(value, 3) for key, value in self.timings.items()},
        }


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    pi: str
    depth: int
    status: str
    phase: str = "writing"
    total: int = -1
