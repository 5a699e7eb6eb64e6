"""
Repository for export job lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.export_job import ExportJob, ExportJobStatus


class ExportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        root_pi: str,
        options: dict[str, Any] | None = None,
        output_location: str | None = None,
    ) -> ExportJob:
        job = ExportJob(
            root_pi=root_pi,
            status=ExportJobStatus.PENDING,
            options=options,
            output_location=output_location,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> ExportJob | None:
        return self._session.get(ExportJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        root_pi: str | None = None,
        status: str | None = None,
    ) -> list[ExportJob]:
        stmt: Select[tuple[ExportJob]] = select(ExportJob)

        if root_pi:
            stmt = stmt.where(ExportJob.root_pi == root_pi)
        if status:
            stmt = stmt.where(ExportJob.status == status)

        stmt = stmt.order_by(ExportJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: uuid.UUID) -> ExportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ExportJobStatus.RUNNING
        job.started_at = utc_now()
        job.completed_at = None
        job.error_message = None
        return job

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        result_payload: dict[str, Any] | None = None,
    ) -> ExportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ExportJobStatus.COMPLETED
        job.completed_at = utc_now()
        job.result_payload = result_payload
        job.error_message = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> ExportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ExportJobStatus.FAILED
        job.completed_at = utc_now()
        job.error_message = error_message
        if result_payload is not None:
            job.result_payload = result_payload
        return job
