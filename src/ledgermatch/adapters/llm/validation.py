"""LLM response validation for prompt injection mitigation."""

import re
from datetime import date
from decimal import Decimal, InvalidOperation

# Unique delimiters for document text boundaries
DOC_BEGIN = "<<<DOCUMENT_TEXT_BEGIN>>>"
DOC_END = "<<<DOCUMENT_TEXT_END>>>"

# Pattern for suspicious content: path traversal, code-like, control chars
_SUSPICIOUS_PATTERN = re.compile(r"\.\./|[{}<>`]|[\x00-\x1f]")

_IBAN_PATTERN = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{10,30}$")
_VAT_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{2,13}$")
_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
_DOMAIN_PATTERN = re.compile(r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@([^@\s]+)$")

NULL_VALUES = ("null", "unknown", "none", "")


def looks_suspicious(text: str) -> bool:
    """Check if text looks like injection attempt."""
    if not text:
        return False
    return bool(_SUSPICIOUS_PATTERN.search(text))


def sanitize_field(text: str | None, fallback: str | None = None) -> str | None:
    """Return text if safe, otherwise fallback."""
    if not text or not isinstance(text, str):
        return fallback
    if text.strip().lower() in NULL_VALUES:
        return fallback
    if looks_suspicious(text):
        return fallback
    return text.strip()


def _compact(value: str | None) -> str:
    if not value or not isinstance(value, str) or value.strip().lower() in NULL_VALUES:
        return ""
    return re.sub(r"[\s.\-]", "", value).upper()


def sanitize_iban(value: str | None) -> str | None:
    iban = _compact(value)
    return iban if _IBAN_PATTERN.match(iban) else None


def sanitize_vat_id(value: str | None) -> str | None:
    vat_id = _compact(value)
    return vat_id if _VAT_PATTERN.match(vat_id) else None


def sanitize_currency(value: str | None) -> str | None:
    currency = _compact(value)
    return currency if _CURRENCY_PATTERN.match(currency) else None


def sanitize_domain(value: str | None) -> str | None:
    if not value or not isinstance(value, str):
        return None
    domain = value.strip().lower()
    domain = re.sub(r"^https?://", "", domain).split("/")[0]
    domain = re.sub(r"^www\.", "", domain)
    return domain if _DOMAIN_PATTERN.match(domain) else None


def sanitize_email(value: str | None) -> str | None:
    if not value or not isinstance(value, str):
        return None
    email = value.strip().lower()
    match = _EMAIL_PATTERN.match(email)
    if not match or not sanitize_domain(match.group(1)):
        return None
    return email


def parse_amount(value: object) -> int | None:
    """Decimal amount as printed (e.g. 119.0 or "119,00") to minor units."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().replace(" ", "")
    if "," in text and "." in text:
        # Whichever separator comes last is the decimal point
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int((amount * 100).to_integral_value())


def parse_date(value: object) -> date | None:
    if not value or not isinstance(value, str) or value.lower() in NULL_VALUES:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
