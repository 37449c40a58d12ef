"""Unit tests for LLM validation module."""

from datetime import date

import pytest

from ledgermatch.adapters.llm.validation import (
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


class TestLooksSuspicious:
    """Tests for looks_suspicious function."""

    def test_empty_string_not_suspicious(self) -> None:
        assert looks_suspicious("") is False

    def test_normal_text_not_suspicious(self) -> None:
        assert looks_suspicious("Invoice from Acme Corp") is False

    def test_path_traversal_suspicious(self) -> None:
        assert looks_suspicious("../../../etc/passwd") is True

    def test_code_like_suspicious(self) -> None:
        assert looks_suspicious("<script>alert('xss')</script>") is True
        assert looks_suspicious("`rm -rf /`") is True

    def test_control_chars_suspicious(self) -> None:
        assert looks_suspicious("normal\x00text") is True


class TestSanitizeField:
    def test_valid_text_stripped(self) -> None:
        assert sanitize_field("  Acme GmbH  ") == "Acme GmbH"

    @pytest.mark.parametrize("value", [None, "", "null", "Unknown", 42])
    def test_missing_values_use_fallback(self, value) -> None:
        assert sanitize_field(value, "fallback") == "fallback"

    def test_suspicious_uses_fallback(self) -> None:
        assert sanitize_field("{{ignore previous}}") is None


class TestIdentifiers:
    def test_iban(self) -> None:
        assert sanitize_iban("de89 3704 0044 0532 0130 00") == "DE89370400440532013000"

    def test_invalid_iban(self) -> None:
        assert sanitize_iban("not an iban") is None

    def test_vat_id(self) -> None:
        assert sanitize_vat_id("ATU 123.456-78") == "ATU12345678"

    def test_currency(self) -> None:
        assert sanitize_currency("eur") == "EUR"
        assert sanitize_currency("euro") is None


class TestDomains:
    def test_domain_from_url(self) -> None:
        assert sanitize_domain("https://www.Acme.com/contact") == "acme.com"

    def test_invalid_domain(self) -> None:
        assert sanitize_domain("not a domain") is None

    def test_email(self) -> None:
        assert sanitize_email(" Billing@Acme.com ") == "billing@acme.com"

    def test_invalid_email(self) -> None:
        assert sanitize_email("billing at acme") is None


class TestParseAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (119.0, 11900),
            ("119,00", 11900),
            ("1.234,56", 123456),
            ("1,234.56", 123456),
            ("-49.99", -4999),
            (42, 4200),
        ],
    )
    def test_amounts(self, value, expected: int) -> None:
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [None, True, "n/a", "inf"])
    def test_invalid(self, value) -> None:
        assert parse_amount(value) is None


class TestParseDate:
    def test_iso_date(self) -> None:
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    @pytest.mark.parametrize("value", [None, "", "null", "15.03.2024", 20240315])
    def test_invalid(self, value) -> None:
        assert parse_date(value) is None
