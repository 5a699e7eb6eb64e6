"""
Exception taxonomy for export jobs.

Node-level failures (``RetrievalError``) are recorded per entity and never
abort a traversal. ``SinkError`` is job-level and fatal. ``NotificationError``
never leaves the notifier.
"""

from __future__ import annotations


class ExportError(Exception):
    """Base exception for export failures."""


class RetrievalError(ExportError):
    """
    Raised when an upstream fetch fails (network, non-2xx, malformed payload).
    """

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class EntityNotFoundError(RetrievalError):
    """Raised when the store answers 404 for an entity or component."""


class SinkError(ExportError):
    """Raised when the output sink cannot be opened, written or closed."""


class WriterStateError(SinkError):
    """Raised when the collection writer is used outside its open window."""


class NotificationError(ExportError):
    """Raised inside the completion notifier; always caught and logged there."""


class RecordRenderError(ExportError):
    """Raised when a rendered record fragment is not a well-formed ``<mods>`` element."""
