"""Shared request/response handling for JSON-speaking LLM adapters."""

import json
import logging
from abc import abstractmethod

from ...domain.models import CompanyInfo, DomainVerdict, ExtractedFields, Partner
from ...errors import CollaboratorError, ExtractionError
from ...ports.extraction import ExtractionPort
from ...ports.reasoning import ReasoningPort
from .prompts import DOMAIN_PROMPT, DUPLICATE_PROMPT, EXTRACTION_PROMPT, LOOKUP_PROMPT
from .validation import (
    DOC_BEGIN,
    DOC_END,
    looks_suspicious,
    parse_amount,
    parse_date,
    sanitize_currency,
    sanitize_domain,
    sanitize_email,
    sanitize_field,
    sanitize_iban,
    sanitize_vat_id,
)

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 100_000


def _load_json(content: str) -> dict:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise CollaboratorError(f"Invalid JSON response: {content[:200]}") from e
    if not isinstance(data, dict):
        raise CollaboratorError(f"Unexpected JSON response: {content[:200]}")
    return data


class LLMAdapter(ExtractionPort, ReasoningPort):
    """Extraction and reasoning over a chat-completion backend.

    Subclasses only implement ``_complete``; it must raise
    ``CollaboratorError`` when the backend fails.
    """

    @abstractmethod
    def _complete(self, system: str, user: str) -> str:
        """Send one system + user message pair, return the raw reply."""
        pass

    def extract(self, text: str) -> ExtractedFields:
        if len(text) > MAX_TEXT_LENGTH:
            text = text[:MAX_TEXT_LENGTH] + "\n\n[Truncated...]"

        try:
            content = self._complete(EXTRACTION_PROMPT, f"{DOC_BEGIN}\n{text}\n{DOC_END}")
            data = _load_json(content)
        except CollaboratorError as e:
            raise ExtractionError(str(e)) from e
        return self._parse_fields(data, text)

    def _parse_fields(self, data: dict, text: str) -> ExtractedFields:
        raw_name = data.get("partner_name")
        if isinstance(raw_name, str) and looks_suspicious(raw_name):
            logger.warning(f"Suspicious partner name rejected: {raw_name[:50]}")

        sender_email = sanitize_email(data.get("sender_email"))
        sender_domain = sender_email.split("@", 1)[1] if sender_email else None

        return ExtractedFields(
            partner_name=sanitize_field(raw_name),
            iban=sanitize_iban(data.get("iban")),
            vat_id=sanitize_vat_id(data.get("vat_id")),
            amount=parse_amount(data.get("amount")),
            currency=sanitize_currency(data.get("currency")),
            date=parse_date(data.get("date")),
            text=text,
            reference=sanitize_field(data.get("reference")),
            sender_email=sender_email,
            sender_domain=sender_domain,
            website=sanitize_domain(data.get("website")),
            is_invoice=data.get("is_invoice") is not False,
        )

    def lookup_company(self, name: str) -> CompanyInfo | None:
        logger.info(f"Looking up company: {name}")
        data = _load_json(self._complete(LOOKUP_PROMPT, json.dumps({"name": name})))
        if not data.get("found"):
            return None

        official = sanitize_field(data.get("name"))
        if not official:
            return None
        raw_aliases = data.get("aliases") if isinstance(data.get("aliases"), list) else []
        aliases = [a for a in (sanitize_field(x) for x in raw_aliases) if a]
        return CompanyInfo(
            name=official,
            vat_id=sanitize_vat_id(data.get("vat_id")),
            website=sanitize_domain(data.get("website")),
            country=sanitize_field(data.get("country")),
            address=sanitize_field(data.get("address")),
            aliases=aliases,
        )

    def find_duplicate(self, company: CompanyInfo, candidates: list[Partner]) -> str | None:
        if not candidates:
            return None
        payload = {
            "company": {"name": company.name, "vat_id": company.vat_id, "website": company.website},
            "candidates": [
                {"id": p.id, "name": p.name, "aliases": p.aliases, "vat_id": p.vat_id, "website": p.website}
                for p in candidates
            ],
        }
        data = _load_json(self._complete(DUPLICATE_PROMPT, json.dumps(payload)))
        duplicate_id = data.get("duplicate_id")
        # Only ids we offered count
        if isinstance(duplicate_id, str) and duplicate_id in {p.id for p in candidates}:
            logger.debug(f"Duplicate of {company.name}: {duplicate_id} ({data.get('reason', '')})")
            return duplicate_id
        return None

    def validate_domain_ownership(self, domain: str, company_name: str) -> DomainVerdict:
        payload = {"domain": domain, "company": company_name}
        data = _load_json(self._complete(DOMAIN_PROMPT, json.dumps(payload)))
        try:
            confidence = int(data.get("confidence", 0))
        except (TypeError, ValueError):
            confidence = 0
        return DomainVerdict(
            is_owner=data.get("is_owner") is True,
            confidence=max(0, min(100, confidence)),
            reason=str(data.get("reason", ""))[:200],
        )
