"""Unit tests for the over-matching guard."""

from datetime import date

from ledgermatch.domain.coverage import covered_amount, is_covered
from ledgermatch.domain.models import Document, ExtractedFields, Transaction


def tx(amount: int) -> Transaction:
    return Transaction(id="tx-1", owner_id="owner-1", amount=amount, date=date(2024, 3, 1))


def doc(document_id: str, amount: int | None, deleted: bool = False) -> Document:
    return Document(id=document_id, owner_id="owner-1", fields=ExtractedFields(amount=amount), deleted=deleted)


def test_within_tolerance_is_covered() -> None:
    assert is_covered(tx(-30000), [doc("a", 29000)]) is True


def test_below_tolerance_is_not_covered() -> None:
    assert is_covered(tx(-30000), [doc("a", 26000)]) is False


def test_amounts_add_up() -> None:
    assert is_covered(tx(-30000), [doc("a", 15000), doc("b", 14000)]) is True


def test_deleted_documents_do_not_count() -> None:
    assert covered_amount(tx(-30000), [doc("a", 29000, deleted=True)]) == 0


def test_excluded_document_does_not_count() -> None:
    assert is_covered(tx(-30000), [doc("a", 29000)], exclude_id="a") is False


def test_missing_amount_counts_as_zero() -> None:
    assert covered_amount(tx(-30000), [doc("a", None)]) == 0


def test_zero_transaction_is_never_covered() -> None:
    assert is_covered(tx(0), [doc("a", 100)]) is False
