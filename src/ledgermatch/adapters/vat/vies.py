"""VAT registry adapter using the EU VIES REST API."""

import logging
import re

import httpx

from ...config import VIES_URL
from ...domain.models import VatCheckResult
from ...errors import CollaboratorError
from ...ports.vat_registry import VatRegistryPort

logger = logging.getLogger(__name__)

# Errors meaning "ask again later", not "invalid number"
TRANSIENT_ERRORS = frozenset(
    {"MS_UNAVAILABLE", "MS_MAX_CONCURRENT_REQ", "GLOBAL_MAX_CONCURRENT_REQ", "SERVICE_UNAVAILABLE", "TIMEOUT"}
)


def normalize_vies_text(text: str | None) -> str | None:
    """VIES returns ALL CAPS names padded with "---"."""
    if not text or text.strip() == "---":
        return None
    cleaned = re.sub(r"-{3,}", "", text).strip()
    return cleaned.title() if cleaned else None


class ViesAdapter(VatRegistryPort):
    """VAT registry implementation using VIES."""

    def __init__(self, base_url: str = VIES_URL, timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def check(self, country_code: str, number: str) -> VatCheckResult:
        logger.info(f"Checking VAT id with VIES: {country_code}{number}")
        try:
            response = httpx.get(
                f"{self.base_url}/ms/{country_code}/vat/{number}",
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorError(f"VIES request failed: {e}") from e

        user_error = data.get("userError")
        if user_error in TRANSIENT_ERRORS:
            raise CollaboratorError(f"VIES unavailable: {user_error}")

        return VatCheckResult(
            valid=data.get("isValid") is True,
            country_code=country_code,
            number=number,
            name=normalize_vies_text(data.get("name")),
            address=normalize_vies_text(data.get("address")),
        )
