"""
app/services package marker.
"""

from app.services.export_job_service import ExportJobService, get_export_job_service
from app.services.export_service import ExportService, get_export_service

__all__ = [
    "ExportJobService",
    "ExportService",
    "get_export_job_service",
    "get_export_service",
]
