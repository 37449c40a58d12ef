"""Reasoning port - company lookup and judgement calls."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import CompanyInfo, DomainVerdict, Partner


class ReasoningPort(ABC):
    """Interface for the questions the matcher cannot answer by rules."""

    @abstractmethod
    def lookup_company(self, name: str) -> "CompanyInfo | None":
        """Look up official company data for an extracted name.

        Returns None when nothing trustworthy was found.
        """
        pass

    @abstractmethod
    def find_duplicate(self, company: "CompanyInfo", candidates: "list[Partner]") -> str | None:
        """Return the id of the candidate that is the same legal entity, if any."""
        pass

    @abstractmethod
    def validate_domain_ownership(self, domain: str, company_name: str) -> "DomainVerdict":
        """Judge whether a domain belongs to the named company."""
        pass
