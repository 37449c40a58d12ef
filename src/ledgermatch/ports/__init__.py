"""Ports - interfaces for external dependencies."""

from .extraction import ExtractionPort
from .notifications import NotificationPort
from .reasoning import ReasoningPort
from .store import StorePort
from .vat_registry import VatRegistryPort

__all__ = ["ExtractionPort", "NotificationPort", "ReasoningPort", "StorePort", "VatRegistryPort"]
