"""VAT registry adapters."""

from .vies import ViesAdapter

__all__ = ["ViesAdapter"]
