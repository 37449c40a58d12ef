"""Notification adapter writing to the log."""

import logging

from ...domain.models import Notification
from ...ports.notifications import NotificationPort

logger = logging.getLogger(__name__)


class LogNotifier(NotificationPort):
    def notify(self, owner_id: str, notification: Notification) -> None:
        logger.info(f"[{owner_id}] {notification.title}: {notification.message}")
