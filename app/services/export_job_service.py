"""
Job service for API-triggered exports: dispatch, lifecycle tracking and notification.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from app.config import ExportOptions, get_export_output_dir, get_external_http_settings
from app.notifier import CompletionNotifier
from app.schemas.callback import CallbackMetrics, ErrorCallback, SuccessCallback
from app.services.export_service import ExportService, get_export_service
from db.models.export_job import ExportJob
from db.repositories.export_job_repository import ExportJobRepository

logger = logging.getLogger(__name__)

NotifierFactory = Callable[[str | None], CompletionNotifier]


class ExportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


def _default_notifier(callback_url: str | None) -> CompletionNotifier:
    return CompletionNotifier(callback_url, http_settings=get_external_http_settings())


class ExportJobService:
    """
    Creates export jobs, runs them in the background and records their summary.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        export_service: ExportService | None = None,
        notifier_factory: NotifierFactory | None = None,
        output_dir: str | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._export_service = export_service or get_export_service()
        self._notifier_factory = notifier_factory or _default_notifier
        self._output_dir = output_dir or get_export_output_dir()

    def trigger_export(
        self,
        *,
        db: Session,
        executor: ExportTaskExecutor,
        root_pi: str,
        options: ExportOptions,
        output_dir: str | None = None,
        callback_url: str | None = None,
    ) -> ExportJob:
        repository = ExportJobRepository(db)
        with db.begin():
            job = repository.create_job(root_pi=root_pi, options=options.to_dict())
            job.output_location = os.path.join(output_dir or self._output_dir, f"{job.id}-{root_pi}-collection.xml")

        try:
            executor.submit(self._run_export_job, job.id, root_pi, job.output_location, options, callback_url)
        except Exception:
            with db.begin():
                repository.mark_failed(job_id=job.id, error_message="Failed to schedule export job.")
            raise

        return job

    def get_job_status(self, *, db: Session, job_id: uuid.UUID) -> ExportJob | None:
        return ExportJobRepository(db).get_job(job_id)

    def list_job_statuses(
        self,
        *,
        db: Session,
        limit: int = 100,
        root_pi: str | None = None,
        status: str | None = None,
    ) -> list[ExportJob]:
        return ExportJobRepository(db).list_jobs(limit=limit, root_pi=root_pi, status=status)

    def _run_export_job(
        self,
        job_id: uuid.UUID,
        root_pi: str,
        output_path: str,
        options: ExportOptions,
        callback_url: str | None,
    ) -> None:
        notifier = self._notifier_factory(callback_url)
        try:
            self._execute_and_notify(notifier, job_id, root_pi, output_path, options)
        finally:
            notifier.close()

    def _execute_and_notify(
        self,
        notifier: CompletionNotifier,
        job_id: uuid.UUID,
        root_pi: str,
        output_path: str,
        options: ExportOptions,
    ) -> None:
        with self._session_factory() as db:
            repository = ExportJobRepository(db)
            try:
                running_job = repository.mark_running(job_id=job_id)
                if running_job is None:
                    raise RuntimeError(f"Export job not found: {job_id}")
                db.commit()

                summary = self._export_service.run_export(root_pi, output_path, options)

                completed_job = repository.mark_completed(job_id=job_id, result_payload=summary.to_dict())
                if completed_job is None:
                    raise RuntimeError(f"Export job not found: {job_id}")
                db.commit()
            except Exception as exc:
                self._mark_job_failed(db=db, job_id=job_id, exc=exc)
                notifier.notify(ErrorCallback(task_id=str(job_id), batch_id="api", error=f"{type(exc).__name__}: {exc}"))
                return

        notifier.notify(
            SuccessCallback(
                task_id=str(job_id),
                batch_id="api",
                output_location=output_path,
                output_file_name=os.path.basename(output_path),
                output_file_size=os.path.getsize(output_path) if os.path.exists(output_path) else 0,
                metrics=CallbackMetrics.from_summary(summary),
            )
        )

    def _mark_job_failed(self, *, db: Session, job_id: uuid.UUID, exc: Exception) -> None:
        repository = ExportJobRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Export job failed id=%s error=%s", job_id, error_message)
        try:
            db.rollback()
            failed_job = repository.mark_failed(job_id=job_id, error_message=error_message[:2000])
            if failed_job is None:
                logger.error("Unable to mark export job as failed because it was not found id=%s", job_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed export job state id=%s", job_id)


@lru_cache(maxsize=1)
def get_export_job_service() -> ExportJobService:
    return ExportJobService()
