"""Unit tests for normalization helpers."""

import pytest

from ledgermatch.domain.normalize import (
    company_name_similarity,
    domains_match,
    extract_root_domain,
    glob_matches,
    has_legal_suffix,
    invoice_numbers,
    normalize_company_name,
    normalize_iban,
    normalize_name,
    normalize_vat_id,
    parse_vat_id,
    round_half_up,
)


class TestIdentifiers:
    def test_iban_strips_whitespace_and_uppercases(self) -> None:
        assert normalize_iban("de89 3704 0044 0532 0130 00") == "DE89370400440532013000"

    def test_vat_id_strips_punctuation(self) -> None:
        assert normalize_vat_id("AT U-123.456 78") == "ATU12345678"

    def test_parse_vat_id(self) -> None:
        assert parse_vat_id("ATU 123 456 78") == ("AT", "U12345678")

    def test_parse_vat_id_rejects_non_eu(self) -> None:
        assert parse_vat_id("US123456789") is None

    def test_parse_vat_id_rejects_short(self) -> None:
        assert parse_vat_id("DE1") is None


class TestDomains:
    def test_extract_root_domain(self) -> None:
        assert extract_root_domain("https://www.amazon.de/gp/help?x=1") == "amazon.de"

    def test_extract_root_domain_empty(self) -> None:
        assert extract_root_domain(None) == ""

    def test_subdomain_matches_either_way(self) -> None:
        assert domains_match("mail.amazon.de", "amazon.de") is True
        assert domains_match("amazon.de", "https://billing.amazon.de") is True

    def test_different_tld_does_not_match(self) -> None:
        assert domains_match("amazon.de", "amazon.com") is False

    def test_suffix_without_dot_does_not_match(self) -> None:
        assert domains_match("notamazon.de", "amazon.de") is False


class TestCompanyNames:
    def test_strips_legal_suffix_and_folds_umlauts(self) -> None:
        assert normalize_company_name("Müller & Söhne GmbH") == "mueller soehne"

    def test_equal_after_normalization(self) -> None:
        assert company_name_similarity("ACME GmbH", "Acme") == 100

    def test_containment_scales_with_coverage(self) -> None:
        # 4 of 14 characters covered
        assert company_name_similarity("Acme", "Acme Solutions") == 82

    def test_unrelated_names_score_low(self) -> None:
        assert company_name_similarity("Acme", "Zebra Logistics") < 40

    def test_empty_name_scores_zero(self) -> None:
        assert company_name_similarity("", "Acme") == 0

    @pytest.mark.parametrize("name", ["Acme GmbH", "Foo Ltd.", "Bar Inc", "Baz B.V."])
    def test_has_legal_suffix(self, name: str) -> None:
        assert has_legal_suffix(name) is True

    @pytest.mark.parametrize("name", ["Netflix", "Agnes Bakery", "Spotify"])
    def test_has_no_legal_suffix(self, name: str) -> None:
        assert has_legal_suffix(name) is False


class TestGlob:
    def test_trailing_wildcard(self) -> None:
        assert glob_matches("amazon*", "Amazon EU S.a.r.l.") is True

    def test_wildcards_both_sides(self) -> None:
        assert glob_matches("*mobile*", "T-Mobile Austria GmbH") is True

    def test_no_match(self) -> None:
        assert glob_matches("amazon*", "Zalando SE") is False

    def test_regex_characters_are_literal(self) -> None:
        assert glob_matches("a.b*", "axb corp") is False


class TestBankText:
    def test_normalize_name_drops_legal_forms(self) -> None:
        assert normalize_name("Acme GmbH") == "acme"
        assert normalize_name("ACME GmbH & Co KG") == "acme &"

    def test_normalize_name_keeps_words_containing_suffixes(self) -> None:
        assert normalize_name("Costco Wholesale") == "costco wholesale"


class TestInvoiceNumbers:
    def test_prefixed_number_from_filename(self) -> None:
        assert invoice_numbers("RE-2024-0042.pdf") == {"2024-0042"}

    def test_same_token_from_bank_reference(self) -> None:
        assert "2024-0042" in invoice_numbers("Rechnung 2024-0042 Danke")

    def test_long_digit_run(self) -> None:
        assert invoice_numbers("Payment 8812345") == {"8812345"}

    def test_short_numbers_ignored(self) -> None:
        assert invoice_numbers("Order 123", None) == set()


class TestRounding:
    def test_half_rounds_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(37.5) == 38

    def test_below_half_rounds_down(self) -> None:
        assert round_half_up(82.14) == 82
