"""
Repository layer exports.
"""

from db.repositories.export_job_repository import ExportJobRepository

__all__ = [
    "ExportJobRepository",
]
