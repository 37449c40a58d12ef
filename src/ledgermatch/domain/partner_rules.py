"""Document-to-partner scoring as an ordered rule list.

Each rule looks at one document and one partner and returns either a
``PartnerMatch`` or ``None`` ("no opinion"). Rules are evaluated in
priority order and the first definitive answer wins.
"""

from dataclasses import dataclass
from typing import Callable

from .models import ExtractedFields, Partner, PartnerType
from .normalize import (
    company_name_similarity,
    domains_match,
    glob_matches,
    normalize_iban,
    normalize_vat_id,
    round_half_up,
)

AUTO_APPLY_THRESHOLD = 89
NAME_MATCH_MIN_SIMILARITY = 60
WEBSITE_NAME_MIN_SIMILARITY = 50


@dataclass
class PartnerMatch:
    partner_id: str
    partner_type: PartnerType
    partner_name: str
    confidence: int
    source: str


Rule = Callable[[ExtractedFields, Partner], PartnerMatch | None]


def _match(partner: Partner, confidence: int, source: str) -> PartnerMatch:
    return PartnerMatch(
        partner_id=partner.id,
        partner_type=partner.partner_type,
        partner_name=partner.name,
        confidence=confidence,
        source=source,
    )


def _best_name_similarity(name: str, partner: Partner) -> int:
    return max(
        (company_name_similarity(name, n) for n in [partner.name, *partner.plain_aliases]),
        default=0,
    )


def iban_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if not fields.iban or not partner.ibans:
        return None
    iban = normalize_iban(fields.iban)
    if any(normalize_iban(p) == iban for p in partner.ibans):
        return _match(partner, 100, "iban")
    return None


def vat_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if not fields.vat_id or not partner.vat_id:
        return None
    if normalize_vat_id(fields.vat_id) == normalize_vat_id(partner.vat_id):
        return _match(partner, 95, "vat_id")
    return None


def email_domain_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if not fields.sender_domain:
        return None
    if any(domains_match(fields.sender_domain, d) for d in partner.email_domains):
        return _match(partner, 90, "email_domain")
    return None


def sender_website_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if fields.sender_domain and partner.website:
        if domains_match(fields.sender_domain, partner.website):
            return _match(partner, 90, "website")
    return None


def document_website_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    # Holdings share domains, so the website alone only suggests
    if not fields.website or not partner.website:
        return None
    if not domains_match(fields.website, partner.website):
        return None
    similarity = _best_name_similarity(fields.partner_name, partner) if fields.partner_name else 0
    confidence = 92 if similarity >= WEBSITE_NAME_MIN_SIMILARITY else 75
    return _match(partner, confidence, "website")


def alias_pattern_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if not fields.partner_name:
        return None
    if any(glob_matches(p, fields.partner_name) for p in partner.alias_patterns):
        return _match(partner, 90, "name")
    return None


def fuzzy_name_rule(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    if not fields.partner_name:
        return None
    similarity = _best_name_similarity(fields.partner_name, partner)
    if similarity < NAME_MATCH_MIN_SIMILARITY:
        return None
    # 60..100 similarity maps linearly onto 60..90 confidence
    confidence = min(90, 60 + (similarity - 60) * 30 / 40)
    return _match(partner, round_half_up(confidence), "name")


PARTNER_RULES: tuple[Rule, ...] = (
    iban_rule,
    vat_rule,
    email_domain_rule,
    sender_website_rule,
    document_website_rule,
    alias_pattern_rule,
    fuzzy_name_rule,
)


def match_partner(fields: ExtractedFields, partner: Partner) -> PartnerMatch | None:
    """Run the rule list against one partner."""
    for rule in PARTNER_RULES:
        match = rule(fields, partner)
        if match is not None:
            return match
    return None


def match_all_partners(
    fields: ExtractedFields,
    user_partners: list[Partner],
    shared_partners: list[Partner],
) -> list[PartnerMatch]:
    """Match against the owner's partners first, then unlocalized shared ones.

    Sorted by confidence, highest first; user partners win ties.
    """
    localized = {p.shared_partner_id for p in user_partners if p.shared_partner_id}
    results: list[PartnerMatch] = []
    seen: set[str] = set()

    for partner in [*user_partners, *(p for p in shared_partners if p.id not in localized)]:
        if not partner.active or partner.id in seen:
            continue
        match = match_partner(fields, partner)
        if match:
            seen.add(partner.id)
            results.append(match)

    # Stable sort keeps user-before-shared order inside equal confidences
    results.sort(key=lambda m: (-m.confidence, m.partner_type != PartnerType.USER))
    return results


def should_auto_apply(confidence: int, threshold: int = AUTO_APPLY_THRESHOLD) -> bool:
    return confidence >= threshold
