"""Shared test fixtures."""

from datetime import date
from typing import Callable
from unittest.mock import MagicMock

import pytest

from ledgermatch.adapters.store import InMemoryStore
from ledgermatch.domain.models import (
    Document,
    DomainVerdict,
    ExtractedFields,
    OwnerProfile,
    Partner,
    Transaction,
    VatCheckResult,
)
from ledgermatch.engine import ReconciliationEngine
from ledgermatch.ports.notifications import NotificationPort
from ledgermatch.ports.reasoning import ReasoningPort
from ledgermatch.ports.vat_registry import VatRegistryPort

OWNER = "owner-1"


@pytest.fixture
def store() -> InMemoryStore:
    """Empty store with an owner profile."""
    store = InMemoryStore()
    store.save_owner_profile(
        OwnerProfile(
            owner_id=OWNER,
            ibans=["DE02 1203 0000 0000 2020 51"],
            vat_ids=["DE999999999"],
            emails=["books@owner.example"],
        )
    )
    return store


@pytest.fixture
def mock_reasoning() -> MagicMock:
    """Mock reasoning port that knows nothing."""
    mock = MagicMock(spec=ReasoningPort)
    mock.lookup_company.return_value = None
    mock.find_duplicate.return_value = None
    mock.validate_domain_ownership.return_value = DomainVerdict(is_owner=False, confidence=0)
    return mock


@pytest.fixture
def mock_vat() -> MagicMock:
    """Mock VAT registry that confirms nothing."""
    mock = MagicMock(spec=VatRegistryPort)
    mock.check.side_effect = lambda cc, number: VatCheckResult(valid=False, country_code=cc, number=number)
    return mock


@pytest.fixture
def mock_notifier() -> MagicMock:
    return MagicMock(spec=NotificationPort)


@pytest.fixture
def engine(
    store: InMemoryStore,
    mock_reasoning: MagicMock,
    mock_vat: MagicMock,
    mock_notifier: MagicMock,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        store=store,
        reasoning=mock_reasoning,
        vat_registry=mock_vat,
        notifier=mock_notifier,
    )


@pytest.fixture
def make_document(store: InMemoryStore) -> Callable[..., Document]:
    """Save a document with extraction complete."""

    def make(document_id: str = "doc-1", filename: str = "invoice.pdf", **fields) -> Document:
        document = Document(
            id=document_id,
            owner_id=OWNER,
            filename=filename,
            fields=ExtractedFields(**fields),
            extraction_complete=True,
        )
        store.save_document(document)
        return document

    return make


@pytest.fixture
def make_partner(store: InMemoryStore) -> Callable[..., Partner]:
    def make(partner_id: str, name: str, owner_id: str | None = OWNER, **kwargs) -> Partner:
        partner = Partner(id=partner_id, name=name, owner_id=owner_id, **kwargs)
        store.save_partner(partner)
        return partner

    return make


@pytest.fixture
def make_transaction(store: InMemoryStore) -> Callable[..., Transaction]:
    def make(
        transaction_id: str,
        amount: int,
        tx_date: date,
        **kwargs,
    ) -> Transaction:
        transaction = Transaction(
            id=transaction_id,
            owner_id=OWNER,
            amount=amount,
            date=tx_date,
            **kwargs,
        )
        store.save_transaction(transaction)
        return transaction

    return make
