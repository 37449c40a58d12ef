"""Notification port."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Notification


class NotificationPort(ABC):
    """Interface for telling an owner something was matched."""

    @abstractmethod
    def notify(self, owner_id: str, notification: "Notification") -> None:
        pass
