"""VAT registry port."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import VatCheckResult


class VatRegistryPort(ABC):
    """Interface for authoritative VAT number validation."""

    @abstractmethod
    def check(self, country_code: str, number: str) -> "VatCheckResult":
        """Validate a VAT number.

        Raises CollaboratorError when the registry is unavailable.
        """
        pass
