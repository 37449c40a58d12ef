"""Extraction port - interface for turning document text into fields."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import ExtractedFields


class ExtractionPort(ABC):
    """Interface for structured field extraction."""

    @abstractmethod
    def extract(self, text: str) -> "ExtractedFields":
        """Extract partner, amount and date fields from document text.

        Raises ExtractionError when the collaborator cannot be reached or
        returns nothing usable.
        """
        pass
