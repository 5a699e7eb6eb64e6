"""
app/connectors package marker.
"""

from app.connectors.arke_client import ArkeStoreClient
from app.connectors.base import RETRYABLE_STATUS_CODES, BaseConnector
from app.connectors.graphdb_client import GraphDBClient

__all__ = [
    "ArkeStoreClient",
    "BaseConnector",
    "GraphDBClient",
    "RETRYABLE_STATUS_CODES",
]
