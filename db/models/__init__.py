"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.export_job import ExportJob, ExportJobStatus

__all__ = [
    "ExportJob",
    "ExportJobStatus",
]
