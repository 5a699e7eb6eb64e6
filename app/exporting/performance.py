"""
Timing, data-volume and memory bookkeeping for one export job.
"""

from __future__ import annotations

import resource
import sys
import threading
import time
from typing import Any

from app.exporting.text_utils import format_bytes

DATA_METRICS: tuple[str, ...] = (
    "bytes_downloaded",
    "components_processed",
    "ocr_text_size",
    "output_bytes",
)


def _peak_rss_bytes() -> int:
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is reported in bytes on macOS and in kilobytes elsewhere.
    return peak if sys.platform == "darwin" else peak * 1024


class PerformanceMonitor:
    """
    Thread-safe collector shared by the store client and the traversal.

    Timers are keyed by a per-operation label and only measure; callers
    fold the duration into a bucket with ``record_timing``, which accumulates
    so concurrent entities add to the same bucket.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.perf_counter()
        self._active: dict[str, float] = {}
        self._timings: dict[str, float] = {}
        self._data: dict[str, int] = {name: 0 for name in DATA_METRICS}
        self._peak_memory = 0

    def start_timer(self, label: str) -> None:
        with self._lock:
            self._active[label] = time.perf_counter()

    def stop_timer(self, label: str) -> float:
        """
        Stop ``label`` and return its duration in seconds, or 0.0 if it was never started.
        """

        with self._lock:
            started = self._active.pop(label, None)
        if started is None:
            return 0.0
        return time.perf_counter() - started

    def record_timing(self, label: str, seconds: float) -> None:
        with self._lock:
            self._timings[label] = self._timings.get(label, 0.0) + seconds

    def add_data_metric(self, metric: str, value: int) -> None:
        if metric not in self._data:
            raise ValueError(f"Unknown data metric '{metric}'. Allowed values: {list(DATA_METRICS)}.")
        with self._lock:
            self._data[metric] += value

    def sample_memory(self) -> int:
        current = _peak_rss_bytes()
        with self._lock:
            self._peak_memory = max(self._peak_memory, current)
            return self._peak_memory

    @property
    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self._started_at

    @property
    def peak_memory_bytes(self) -> int:
        with self._lock:
            return self._peak_memory

    def timings(self) -> dict[str, float]:
        with self._lock:
            return dict(self._timings)

    def data(self) -> dict[str, int]:
        with self._lock:
            return dict(self._data)

    def snapshot(self) -> dict[str, Any]:
        self.sample_memory()
        timings = self.timings()
        timings["total"] = self.elapsed_seconds
        return {
            "timings": timings,
            "memory": {"peak_bytes": self.peak_memory_bytes},
            "data": self.data(),
        }

    def format_report(self) -> str:
        """
        Human-readable multi-line report for command-line runs.
        """

        metrics = self.snapshot()
        rule = "=" * 60
        lines = [rule, "PERFORMANCE METRICS", rule, "", "TIMINGS:"]
        for label, seconds in sorted(metrics["timings"].items()):
            lines.append(f"  {label:<22} {seconds * 1000:.0f}ms")
        lines.extend(["", "MEMORY:", f"  {'peak':<22} {format_bytes(metrics['memory']['peak_bytes'])}", ""])
        lines.append("DATA:")
        data = metrics["data"]
        lines.append(f"  {'bytes downloaded':<22} {format_bytes(data['bytes_downloaded'])}")
        lines.append(f"  {'components processed':<22} {data['components_processed']}")
        lines.append(f"  {'ocr text size':<22} {format_bytes(data['ocr_text_size'])}")
        lines.append(f"  {'output size':<22} {format_bytes(data['output_bytes'])}")
        lines.extend(["", rule])
        return "\n".join(lines)
