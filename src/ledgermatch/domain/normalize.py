"""Normalization and similarity helpers shared by the matchers."""

import re

from rapidfuzz.distance import Levenshtein

# Trailing legal-entity suffixes, applied in order
COMPANY_SUFFIXES = [
    re.compile(p, re.IGNORECASE)
    for p in (
        # German/Austrian
        r"\s*gmbh\s*$",
        r"\s*g\.m\.b\.h\.\s*$",
        r"\s*ges\.?m\.?b\.?h\.?\s*$",
        r"\s*mbh\s*$",
        r"\s*ag\s*$",
        r"\s*kg\s*$",
        r"\s*ohg\s*$",
        r"\s*og\s*$",
        r"\s*e\.?u\.?\s*$",
        r"\s*&\s*co\.?\s*(kg|ohg)?\s*$",
        # English
        r"\s*ltd\.?\s*$",
        r"\s*limited\s*$",
        r"\s*inc\.?\s*$",
        r"\s*incorporated\s*$",
        r"\s*corp\.?\s*$",
        r"\s*corporation\s*$",
        r"\s*llc\s*$",
        r"\s*llp\s*$",
        r"\s*plc\s*$",
        # French
        r"\s*s\.?a\.?r\.?l\.?\s*$",
        r"\s*sas\s*$",
        # Italian
        r"\s*s\.?r\.?l\.?\s*$",
        r"\s*s\.?p\.?a\.?\s*$",
        # Dutch
        r"\s*b\.?v\.?\s*$",
        r"\s*n\.?v\.?\s*$",
    )
]

# Whole-word legal forms that mark an extracted name as a company
_LEGAL_FORM = re.compile(
    r"(?<![a-z0-9])("
    r"gmbh|g\.m\.b\.h\.|ges\.?m\.?b\.?h\.?|mbh|ag|kg|ohg|og|e\.u\.|"
    r"ltd\.?|limited|inc\.?|incorporated|corp\.?|corporation|llc|llp|plc|"
    r"s\.a\.r\.l\.|sarl|sas|s\.r\.l\.|srl|s\.p\.a\.|spa|b\.v\.|bv|n\.v\.|nv|"
    r"ab|as|oy|aps|sp\. z o\.o\."
    r")(?![a-z0-9])",
    re.IGNORECASE,
)

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})

# Legal forms as they show up in bank free text
_BANK_SUFFIX = re.compile(
    r"(?<![a-z0-9])(gmbh|ag|kg|ohg|ug|e\.?k\.?|inc\.?|ltd\.?|llc|co\.?)(?![a-z0-9])"
)

# Tokens looking like invoice/receipt numbers: prefixed, or digit runs of 5+
_INVOICE_NUMBER = re.compile(
    r"(?<![a-z0-9])(?:inv|invoice|re|rg|rechnung|nr|no|receipt|bill)"
    r"(?:[-_ #.:]+|(?=\d))([a-z0-9][a-z0-9-]{3,})"
    r"|(?<![a-z0-9])(\d{5,})(?![0-9])",
    re.IGNORECASE,
)


def normalize_iban(iban: str) -> str:
    return re.sub(r"\s+", "", iban).upper()


def normalize_vat_id(vat_id: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", vat_id.upper())


def normalize_email(email: str) -> str:
    return email.strip().lower()


def extract_root_domain(value: str | None) -> str:
    """Reduce a URL or domain to its bare host.

    "https://www.amazon.de/path" -> "amazon.de"
    """
    if not value:
        return ""
    domain = value.lower().strip()
    domain = re.sub(r"^https?://", "", domain)
    domain = domain.split("/")[0].split("?")[0].split("#")[0]
    domain = re.sub(r"^www\.", "", domain)
    return domain


def domains_match(domain1: str | None, domain2: str | None) -> bool:
    """Equal domains, or one is a subdomain of the other."""
    d1 = extract_root_domain(domain1)
    d2 = extract_root_domain(domain2)
    if not d1 or not d2:
        return False
    if d1 == d2:
        return True
    return d1.endswith(f".{d2}") or d2.endswith(f".{d1}")


def normalize_company_name(name: str | None) -> str:
    """Lowercase, strip legal suffixes and punctuation, fold umlauts."""
    if not name:
        return ""
    normalized = name.lower().strip()
    for suffix in COMPANY_SUFFIXES:
        normalized = suffix.sub("", normalized)
    normalized = re.sub(r"[^a-z0-9äöüß\s]", " ", normalized)
    normalized = normalized.translate(_UMLAUTS)
    return re.sub(r"\s+", " ", normalized).strip()


def has_legal_suffix(name: str | None) -> bool:
    """Whether an extracted name carries a legal-entity form (GmbH, Ltd, ...)."""
    if not name:
        return False
    return bool(_LEGAL_FORM.search(name))


def company_name_similarity(name1: str, name2: str) -> int:
    """Similarity 0-100 between two company names.

    Exact after normalization is 100. Containment scores 75-100 by how much
    of the longer name the shorter covers. Otherwise edit distance.
    """
    n1 = normalize_company_name(name1)
    n2 = normalize_company_name(name2)
    if not n1 or not n2:
        return 0
    if n1 == n2:
        return 100
    if n1 in n2 or n2 in n1:
        shorter, longer = sorted((n1, n2), key=len)
        return round_half_up(75 + len(shorter) / len(longer) * 25)
    return round_half_up(Levenshtein.normalized_similarity(n1, n2) * 100)


def glob_matches(pattern: str, text: str) -> bool:
    """Case-insensitive full match where "*" stands for any characters."""
    if not pattern or not text:
        return False
    parts = [re.escape(p) for p in pattern.lower().strip().split("*")]
    return re.fullmatch(".*".join(parts), text.lower().strip(), re.DOTALL) is not None


def normalize_name(name: str) -> str:
    """Looser normalization used against bank free text."""
    name = name.lower()
    name = _BANK_SUFFIX.sub(" ", name)
    return re.sub(r"\s+", " ", name).strip()


def invoice_numbers(*texts: str | None) -> set[str]:
    """Invoice-number-like tokens found in the given texts, upper-cased."""
    found: set[str] = set()
    for text in texts:
        if not text:
            continue
        for match in _INVOICE_NUMBER.finditer(text):
            token = (match.group(1) or match.group(2)).upper()
            if sum(c.isdigit() for c in token) >= 4:
                found.add(token)
    return found


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


# XI = Northern Ireland
EU_COUNTRIES = frozenset(
    {
        "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "EL", "ES",
        "FI", "FR", "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT",
        "NL", "PL", "PT", "RO", "SE", "SI", "SK", "XI",
    }
)


def parse_vat_id(vat_id: str) -> tuple[str, str] | None:
    """Split "ATU 123 456 78" into ("AT", "U12345678").

    Returns None for non-EU prefixes and implausibly short numbers.
    """
    cleaned = normalize_vat_id(vat_id)
    if len(cleaned) < 4:
        return None
    country_code, number = cleaned[:2], cleaned[2:]
    if country_code not in EU_COUNTRIES:
        return None
    return country_code, number
