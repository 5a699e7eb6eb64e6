"""
Completion callback payloads posted to the orchestrator.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.domain.traversal import ExportSummary


class CallbackMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_time_ms: int = Field(ge=0)
    entities_exported: int = Field(ge=0)
    entities_failed: int = Field(ge=0)
    entities_incomplete: int = Field(ge=0)
    peak_memory_mb: int = Field(ge=0)

    @classmethod
    def from_summary(cls, summary: ExportSummary) -> "CallbackMetrics":
        return cls(
            total_time_ms=int(summary.elapsed_seconds * 1000),
            entities_exported=summary.exported_count,
            entities_failed=summary.error_count,
            entities_incomplete=summary.incomplete_count,
            peak_memory_mb=round(summary.peak_memory_bytes / 1024 / 1024),
        )


class SuccessCallback(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    batch_id: str
    status: Literal["success"] = "success"
    output_location: str
    output_file_name: str
    output_file_size: int = Field(ge=0)
    metrics: CallbackMetrics


class ErrorCallback(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    batch_id: str
    status: Literal["error"] = "error"
    error: str


CallbackPayload = Union[SuccessCallback, ErrorCallback]
