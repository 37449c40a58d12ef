"""Unit tests for partner scoring rules."""

from ledgermatch.domain.models import ExtractedFields, Partner, PartnerType
from ledgermatch.domain.partner_rules import (
    match_all_partners,
    match_partner,
    should_auto_apply,
)


def partner(partner_id: str = "p1", name: str = "Acme Solutions", owner_id: str | None = "owner-1", **kwargs) -> Partner:
    return Partner(id=partner_id, name=name, owner_id=owner_id, **kwargs)


class TestRules:
    def test_iban_match_is_certain(self) -> None:
        fields = ExtractedFields(iban="DE89 3704 0044 0532 0130 00")
        match = match_partner(fields, partner(ibans=["DE89370400440532013000"]))
        assert match is not None
        assert match.confidence == 100
        assert match.source == "iban"

    def test_vat_id_match(self) -> None:
        fields = ExtractedFields(vat_id="ATU12345678")
        match = match_partner(fields, partner(vat_id="AT U12345678"))
        assert match.confidence == 95
        assert match.source == "vat_id"

    def test_learned_email_domain_matches_subdomain(self) -> None:
        fields = ExtractedFields(sender_domain="billing.acme.com")
        match = match_partner(fields, partner(email_domains=["acme.com"]))
        assert match.confidence == 90
        assert match.source == "email_domain"

    def test_sender_domain_matches_website(self) -> None:
        fields = ExtractedFields(sender_domain="acme.com")
        match = match_partner(fields, partner(website="www.acme.com"))
        assert match.confidence == 90
        assert match.source == "website"

    def test_document_website_with_similar_name(self) -> None:
        fields = ExtractedFields(website="acme.com", partner_name="Acme Solutions GmbH")
        match = match_partner(fields, partner(website="acme.com"))
        assert match.confidence == 92

    def test_document_website_with_other_name_only_suggests(self) -> None:
        fields = ExtractedFields(website="acme.com", partner_name="Other Corp")
        match = match_partner(fields, partner(name="Acme", website="acme.com"))
        assert match.confidence == 75
        assert not should_auto_apply(match.confidence)

    def test_wildcard_alias(self) -> None:
        fields = ExtractedFields(partner_name="Amazon EU S.a.r.l.")
        match = match_partner(fields, partner(name="Amazon", aliases=["amazon*"]))
        assert match.confidence == 90
        assert match.source == "name"

    def test_fuzzy_exact_name_caps_at_90(self) -> None:
        fields = ExtractedFields(partner_name="ACME Solutions GmbH")
        match = match_partner(fields, partner())
        assert match.confidence == 90

    def test_fuzzy_uses_plain_aliases(self) -> None:
        fields = ExtractedFields(partner_name="Acme Sol")
        match = match_partner(fields, partner(name="Unrelated Name", aliases=["Acme Sol"]))
        assert match.confidence == 90

    def test_partial_name_scales_down(self) -> None:
        # Containment similarity 89 maps to 60 + 29 * 0.75
        fields = ExtractedFields(partner_name="Acme Sol")
        match = match_partner(fields, partner())
        assert match.confidence == 82

    def test_no_opinion(self) -> None:
        fields = ExtractedFields(partner_name="Zebra Logistics")
        assert match_partner(fields, partner()) is None

    def test_first_rule_wins(self) -> None:
        fields = ExtractedFields(iban="DE89370400440532013000", vat_id="ATU12345678")
        match = match_partner(fields, partner(ibans=["DE89370400440532013000"], vat_id="ATU12345678"))
        assert match.source == "iban"


class TestMatchAllPartners:
    def test_sorted_by_confidence(self) -> None:
        fields = ExtractedFields(partner_name="Acme Solutions", iban="DE89370400440532013000")
        by_name = partner("p1")
        by_iban = partner("p2", name="Other", ibans=["DE89370400440532013000"])
        matches = match_all_partners(fields, [by_name, by_iban], [])
        assert [m.partner_id for m in matches] == ["p2", "p1"]

    def test_user_partner_wins_tie(self) -> None:
        fields = ExtractedFields(partner_name="Acme Solutions")
        shared = partner("s1", owner_id=None)
        user = partner("u1")
        matches = match_all_partners(fields, [user], [shared])
        assert matches[0].partner_id == "u1"
        assert matches[1].partner_type == PartnerType.SHARED

    def test_localized_shared_partner_skipped(self) -> None:
        fields = ExtractedFields(partner_name="Acme Solutions")
        shared = partner("s1", owner_id=None)
        local = partner("u1", shared_partner_id="s1")
        matches = match_all_partners(fields, [local], [shared])
        assert [m.partner_id for m in matches] == ["u1"]

    def test_inactive_partner_skipped(self) -> None:
        fields = ExtractedFields(partner_name="Acme Solutions")
        assert match_all_partners(fields, [partner(active=False)], []) == []


class TestAutoApply:
    def test_threshold(self) -> None:
        assert should_auto_apply(89) is True
        assert should_auto_apply(88) is False
