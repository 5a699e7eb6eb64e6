"""
app/connectors/arke_client.py

Client for the remote manifest store and its IPFS gateway.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests
from pydantic import ValidationError

from app.config import ArkeSettings, ExternalHTTPSettings
from app.connectors.base import BaseConnector
from app.exporting.errors import RetrievalError
from app.exporting.performance import PerformanceMonitor
from app.schemas.arke import EntityManifest

logger = logging.getLogger(__name__)


class ArkeStoreClient(BaseConnector):
    """
    Synchronous store client. Safe to call from worker threads.
    """

    def __init__(
        self,
        *,
        settings: ArkeSettings,
        http_settings: ExternalHTTPSettings,
        monitor: PerformanceMonitor | None = None,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="arke", http_settings=http_settings, session=session)
        self.settings = settings
        self._monitor = monitor

    def fetch_manifest(self, pi: str) -> EntityManifest:
        """
        Fetch and validate the manifest of one entity.

        Raises ``EntityNotFoundError`` for unknown identifiers and
        ``RetrievalError`` for every other failure, including schema-invalid payloads.
        """

        url = f"{self.settings.api_url.rstrip('/')}/entities/{pi}"
        if self._monitor is not None:
            self._monitor.start_timer(f"manifest:{pi}")
        try:
            payload = self._request_json(method="GET", url=url)
        finally:
            if self._monitor is not None:
                duration = self._monitor.stop_timer(f"manifest:{pi}")
                self._monitor.record_timing("manifest_fetch", duration)

        try:
            manifest = EntityManifest.model_validate(payload)
        except ValidationError as exc:
            raise RetrievalError(
                f"Manifest for {pi} failed validation: {exc.error_count()} error(s).",
                url=url,
            ) from exc
        logger.debug(
            "Manifest fetched pi=%s ver=%s components=%s",
            manifest.pi,
            manifest.ver,
            len(manifest.components),
        )
        return manifest

    def fetch_component_text(self, cid: str) -> str:
        """
        Download one component by content identifier.
        """

        text = self._request_text(method="GET", url=self.settings.ipfs_url(cid))
        if self._monitor is not None:
            self._monitor.add_data_metric("bytes_downloaded", len(text.encode("utf-8")))
            self._monitor.add_data_metric("components_processed", 1)
        return text

    def fetch_component_json(self, cid: str) -> Any:
        text = self.fetch_component_text(cid)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RetrievalError(
                f"Component {cid} is not valid JSON.",
                url=self.settings.ipfs_url(cid),
            ) from exc

    def web_url(self, pi: str) -> str:
        return self.settings.web_url_for(pi)

    def ipfs_url(self, cid: str) -> str:
        return self.settings.ipfs_url(cid)

    def cat_url(self, cid: str) -> str:
        return self.settings.cat_url(cid)

    def cdn_url(self, asset_id: str) -> str:
        return self.settings.cdn_asset_url(asset_id)
