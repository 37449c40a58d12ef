"""Notification adapter posting JSON to a webhook."""

import logging
from urllib.parse import urlparse

import httpx

from ...domain.models import Notification
from ...errors import CollaboratorError
from ...ports.notifications import NotificationPort

logger = logging.getLogger(__name__)


class WebhookNotifier(NotificationPort):
    """POSTs each notification as JSON."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid webhook_url scheme: {parsed.scheme}")
        self.url = url
        self.timeout = timeout

    def notify(self, owner_id: str, notification: Notification) -> None:
        try:
            response = httpx.post(
                self.url,
                json={
                    "owner_id": owner_id,
                    "kind": notification.kind,
                    "title": notification.title,
                    "message": notification.message,
                    "context": notification.context,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Webhook delivery failed: {e}") from e
        logger.debug(f"Notified {owner_id}: {notification.kind}")
