"""
app/connectors/graphdb_client.py

Client for the graph database gateway holding linked entities per PI.
"""

from __future__ import annotations

import logging

import requests
from pydantic import ValidationError

from app.config import ArkeSettings, ExternalHTTPSettings
from app.connectors.base import BaseConnector
from app.exporting.errors import EntityNotFoundError, RetrievalError
from app.schemas.arke import LinkedEntities

logger = logging.getLogger(__name__)


class GraphDBClient(BaseConnector):
    """
    Linked-entity lookups. Never raises: a failed lookup yields an empty result.
    """

    def __init__(
        self,
        *,
        settings: ArkeSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="graphdb", http_settings=http_settings, session=session)
        self.settings = settings

    def get_entities_for_pi(self, pi: str) -> LinkedEntities:
        url = f"{self.settings.graphdb_url.rstrip('/')}/api/pi/{pi}/entities-with-relationships"
        try:
            payload = self._request_json(method="GET", url=url)
            result = LinkedEntities.model_validate(payload)
        except EntityNotFoundError:
            logger.info("No linked entities pi=%s", pi)
            return LinkedEntities()
        except (RetrievalError, ValidationError) as exc:
            logger.warning("Linked entity lookup failed pi=%s error=%s", pi, exc)
            return LinkedEntities()

        logger.debug(
            "Linked entities fetched pi=%s entities=%s relationships=%s",
            pi,
            len(result.entities),
            len(result.relationships),
        )
        return result
