"""
app/schemas package marker.
"""

from app.schemas.arke import EntityManifest, LinkedEntities, RefDescriptor, RelationshipGraph, SourceMetadataRecord
from app.schemas.callback import CallbackMetrics, ErrorCallback, SuccessCallback
from app.schemas.export_job import (
    ExportJobAcceptedResponse,
    ExportJobListResponse,
    ExportJobRequest,
    ExportJobStatusResponse,
)

__all__ = [
    "CallbackMetrics",
    "EntityManifest",
    "ErrorCallback",
    "ExportJobAcceptedResponse",
    "ExportJobListResponse",
    "ExportJobRequest",
    "ExportJobStatusResponse",
    "LinkedEntities",
    "RefDescriptor",
    "RelationshipGraph",
    "SourceMetadataRecord",
    "SuccessCallback",
]
