"""
app/domain package marker.
"""

from app.domain.mods import ModsDocument
from app.domain.traversal import EntityIssue, ExportOutcome, ExportSummary, OutcomeStatus, ProgressEvent, TraversalNode

__all__ = [
    "EntityIssue",
    "ExportOutcome",
    "ExportSummary",
    "ModsDocument",
    "OutcomeStatus",
    "ProgressEvent",
    "TraversalNode",
]
