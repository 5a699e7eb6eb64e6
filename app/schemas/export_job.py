"""
Schemas for export job trigger and status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class ExportOptionsRequest(BaseModel):
    max_depth: int = Field(default=5, ge=0)
    batch_size: int = Field(default=10, ge=1)
    include_ocr: bool = True
    max_text_length: int = Field(default=100_000, ge=1)
    entity_source: Literal["graphdb", "cheimarros", "both"] = "cheimarros"
    graph_mode: Literal["full", "minimal", "skip"] = "full"
    component_types: list[Literal["ref", "parent", "children", "other"]] = Field(
        default_factory=lambda: ["ref", "parent", "children", "other"]
    )
    verbose: bool = True


class ExportJobRequest(BaseModel):
    pi: str = Field(min_length=1, max_length=128)
    output_dir: str | None = None
    callback_url: str | None = None
    options: ExportOptionsRequest = Field(default_factory=ExportOptionsRequest)


class ExportJobAcceptedResponse(BaseModel):
    job_id: UUID
    root_pi: str
    status: str
    output_location: str | None = None
    created_at: datetime


class ExportJobStatusResponse(BaseModel):
    job_id: UUID
    root_pi: str
    status: str
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    options: dict[str, Any] | None = None
    output_location: str | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None


class ExportJobListResponse(BaseModel):
    jobs: list[ExportJobStatusResponse] = Field(default_factory=list)
