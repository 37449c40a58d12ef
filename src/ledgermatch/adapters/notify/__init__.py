"""Notification adapters."""

from ...config import NotifyConfig
from ...ports.notifications import NotificationPort
from .log import LogNotifier
from .webhook import WebhookNotifier

__all__ = ["LogNotifier", "WebhookNotifier", "create_notifier"]


def create_notifier(config: NotifyConfig) -> NotificationPort:
    """Webhook when configured, otherwise the log."""
    if config.webhook_url:
        return WebhookNotifier(config.webhook_url, timeout=config.timeout)
    return LogNotifier()
