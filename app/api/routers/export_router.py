"""
Export job endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import ExportOptions
from app.schemas.export_job import (
    ExportJobAcceptedResponse,
    ExportJobListResponse,
    ExportJobRequest,
    ExportJobStatusResponse,
)
from app.services.export_job_service import (
    ExportJobService,
    FastAPIBackgroundTaskExecutor,
    get_export_job_service,
)
from db.models.export_job import ExportJob
from db.session import get_db

router = APIRouter(tags=["exports"])


@router.post(
    "/exports",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ExportJobAcceptedResponse,
)
def trigger_export(
    request: ExportJobRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    service: ExportJobService = Depends(get_export_job_service),
) -> ExportJobAcceptedResponse:
    options = ExportOptions.from_mapping(request.options.model_dump())
    job = service.trigger_export(
        db=db,
        executor=FastAPIBackgroundTaskExecutor(background_tasks),
        root_pi=request.pi,
        options=options,
        output_dir=request.output_dir,
        callback_url=request.callback_url,
    )
    return ExportJobAcceptedResponse(
        job_id=job.id,
        root_pi=job.root_pi,
        status=job.status,
        output_location=job.output_location,
        created_at=job.created_at,
    )


@router.get("/exports/{job_id}", response_model=ExportJobStatusResponse)
def get_export_status(
    job_id: UUID,
    db: Session = Depends(get_db),
    service: ExportJobService = Depends(get_export_job_service),
) -> ExportJobStatusResponse:
    job = service.get_job_status(db=db, job_id=job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Export job not found: {job_id}",
        )
    return _to_status_response(job)


@router.get("/exports", response_model=ExportJobListResponse)
def list_exports(
    root_pi: str | None = Query(default=None, description="Optional root PI filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    db: Session = Depends(get_db),
    service: ExportJobService = Depends(get_export_job_service),
) -> ExportJobListResponse:
    jobs = service.list_job_statuses(db=db, limit=limit, root_pi=root_pi, status=status_filter)
    return ExportJobListResponse(jobs=[_to_status_response(job) for job in jobs])


def _to_status_response(job: ExportJob) -> ExportJobStatusResponse:
    return ExportJobStatusResponse(
        job_id=job.id,
        root_pi=job.root_pi,
        status=job.status,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        options=job.options,
        output_location=job.output_location,
        result_payload=job.result_payload,
        error_message=job.error_message,
    )
