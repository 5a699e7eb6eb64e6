"""
app/notifier.py

Completion notifier: posts one outcome payload per job to a callback URL.
"""

from __future__ import annotations

import logging
import threading

import requests

from app.config import ExternalHTTPSettings
from app.connectors.base import BaseConnector
from app.exporting.errors import NotificationError, RetrievalError
from app.schemas.callback import CallbackPayload

logger = logging.getLogger(__name__)


class CompletionNotifier(BaseConnector):
    """
    Sends at most one callback. Failures are logged and never raised to the caller.
    """

    def __init__(
        self,
        callback_url: str | None,
        *,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="callback", http_settings=http_settings, session=session)
        self._callback_url = callback_url
        self._sent = False
        self._sent_lock = threading.Lock()

    @property
    def sent(self) -> bool:
        return self._sent

    def notify(self, payload: CallbackPayload) -> bool:
        """
        Post ``payload``. Returns True only when the callback was accepted.
        """

        with self._sent_lock:
            if self._sent:
                logger.warning(
                    "Callback already sent task_id=%s, ignoring status=%s",
                    payload.task_id,
                    payload.status,
                )
                return False
            self._sent = True

        if not self._callback_url:
            logger.info("No callback URL configured task_id=%s, skipping callback", payload.task_id)
            return False

        try:
            self._post(self._callback_url, payload)
        except NotificationError as exc:
            logger.error("Callback failed task_id=%s url=%s error=%s", payload.task_id, self._callback_url, exc)
            return False

        logger.info("Callback sent task_id=%s status=%s", payload.task_id, payload.status)
        return True

    def _post(self, url: str, payload: CallbackPayload) -> None:
        try:
            self._request(
                method="POST",
                url=url,
                headers={"Content-Type": "application/json"},
                json_body=payload.model_dump(mode="json"),
            )
        except RetrievalError as exc:
            raise NotificationError(f"Callback rejected: {exc}") from exc
        except requests.RequestException as exc:
            raise NotificationError(f"Callback transport error: {exc}") from exc
