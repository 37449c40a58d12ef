"""Unit tests for the transaction matching stage."""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from ledgermatch.domain.models import MatchedBy, PartnerType
from ledgermatch.domain.transaction_matcher import TransactionMatchingService

DAY = date(2024, 3, 15)


@pytest.fixture
def service(store, mock_notifier: MagicMock) -> TransactionMatchingService:
    return TransactionMatchingService(store, mock_notifier)


def assign(store, document_id: str, partner_id: str, matched_by: MatchedBy = MatchedBy.AUTO) -> None:
    store.update_document(
        document_id,
        partner_id=partner_id,
        partner_type=PartnerType.USER,
        partner_matched_by=matched_by,
        partner_confidence=95,
        partner_match_complete=True,
    )


class TestAutoConnect:
    def test_strong_match_connects_and_notifies(
        self, service, store, make_document, make_transaction, mock_notifier
    ) -> None:
        tx = make_transaction("tx-1", -10000, DAY, partner_id="p1")
        make_document(amount=10000, date=DAY)
        assign(store, "doc-1", "p1")

        result = service.match("doc-1")

        assert result.connected == [tx.id]
        doc = store.get_document("doc-1")
        assert doc.transaction_ids == ["tx-1"]
        assert doc.transaction_match_complete is True
        assert store.get_transaction("tx-1").document_ids == ["doc-1"]
        connection = store.find_connection("doc-1", "tx-1")
        assert connection.confidence == 100
        assert "partner" in connection.signals

        mock_notifier.notify.assert_called_once()
        owner_id, notification = mock_notifier.notify.call_args.args
        assert owner_id == "owner-1"
        assert notification.kind == "document_transaction_match"
        assert notification.title == "Matched 1 transaction to file"
        assert notification.context["auto_match_count"] == 1

    def test_rerun_keeps_single_connection(self, service, store, make_document, make_transaction) -> None:
        make_transaction("tx-1", -10000, DAY, partner_id="p1")
        make_document(amount=10000, date=DAY)
        assign(store, "doc-1", "p1")

        service.match("doc-1")
        second = service.match("doc-1")

        assert second.connected == []
        assert len(store.connections_for_document("doc-1")) == 1
        assert store.get_document("doc-1").transaction_ids == ["tx-1"]

    def test_medium_match_only_suggests(
        self, service, store, make_document, make_transaction, mock_notifier
    ) -> None:
        make_transaction("tx-1", -10000, DAY)
        make_document(amount=10000, date=DAY)

        result = service.match("doc-1")

        assert result.connected == []
        doc = store.get_document("doc-1")
        assert [(s.transaction_id, s.confidence) for s in doc.transaction_suggestions] == [("tx-1", 65)]
        notification = mock_notifier.notify.call_args.args[1]
        assert notification.title == "Found 1 transaction suggestion"

    def test_no_candidates_completes_quietly(self, service, store, make_document, mock_notifier) -> None:
        make_document(amount=10000, date=DAY)

        result = service.match("doc-1")

        assert result.success
        assert store.get_document("doc-1").transaction_match_complete is True
        mock_notifier.notify.assert_not_called()

    def test_outside_window_is_not_considered(self, service, store, make_document, make_transaction) -> None:
        make_transaction("tx-1", -10000, DAY + timedelta(days=45), partner_id="p1")
        make_document(amount=10000, date=DAY)
        assign(store, "doc-1", "p1")

        assert service.match("doc-1").suggestions == 0


class TestGuards:
    def test_rejected_pair_is_never_proposed(self, service, store, make_document, make_transaction) -> None:
        make_transaction("tx-1", -10000, DAY, partner_id="p1", rejected_document_ids=["doc-1"])
        make_document(amount=10000, date=DAY)
        assign(store, "doc-1", "p1")

        result = service.match("doc-1")

        assert result.connected == []
        assert store.get_document("doc-1").transaction_suggestions == []

    def test_covered_transaction_stays_a_suggestion(
        self, service, store, make_document, make_transaction
    ) -> None:
        make_transaction("tx-1", -30000, DAY, partner_id="p1", document_ids=["doc-0"])
        make_document("doc-0", amount=29000, date=DAY)
        make_document("doc-1", amount=30000, date=DAY)
        assign(store, "doc-1", "p1")

        result = service.match("doc-1")

        assert result.connected == []
        assert [s.transaction_id for s in store.get_document("doc-1").transaction_suggestions] == ["tx-1"]

    def test_not_an_invoice(self, service, store, make_document, make_transaction) -> None:
        make_transaction("tx-1", -10000, DAY)
        make_document(amount=10000, date=DAY)
        store.update_document("doc-1", not_invoice=True)

        result = service.match("doc-1")

        assert result.skipped == "not an invoice"
        assert store.get_document("doc-1").transaction_match_complete is True

    def test_failure_completes_stage(self, service, store, make_document, monkeypatch) -> None:
        make_document(amount=10000, date=DAY)

        def boom(*args):
            raise RuntimeError("window query failed")

        monkeypatch.setattr(store, "transactions_in_window", boom)
        result = service.match("doc-1")

        assert result.errors == ["window query failed"]
        doc = store.get_document("doc-1")
        assert doc.transaction_match_complete is True
        assert doc.last_error == "window query failed"

    def test_notification_failure_is_tolerated(
        self, service, store, make_document, make_transaction, mock_notifier
    ) -> None:
        mock_notifier.notify.side_effect = RuntimeError("webhook down")
        make_transaction("tx-1", -10000, DAY)
        make_document(amount=10000, date=DAY)

        result = service.match("doc-1")

        assert result.success
        assert result.suggestions == 1


class TestPartnerPropagation:
    def test_document_partner_overwrites_auto_transaction_partner(
        self, service, store, make_document, make_transaction
    ) -> None:
        make_transaction("tx-1", -10000, DAY, name="Acme GmbH", partner_id="p2", partner_matched_by=MatchedBy.AUTO)
        make_document(amount=10000, date=DAY, partner_name="Acme GmbH")
        assign(store, "doc-1", "p1")

        result = service.match("doc-1")

        assert result.connected == ["tx-1"]
        tx = store.get_transaction("tx-1")
        assert tx.partner_id == "p1"
        assert tx.prior_partner.partner_id == "p2"

    def test_manual_transaction_partner_wins(self, service, store, make_document, make_transaction) -> None:
        make_transaction("tx-1", -10000, DAY, name="Acme GmbH", partner_id="p2", partner_matched_by=MatchedBy.MANUAL)
        make_document(amount=10000, date=DAY, partner_name="Acme GmbH")
        assign(store, "doc-1", "p1")

        service.match("doc-1")

        assert store.get_transaction("tx-1").partner_id == "p2"
        assert store.get_document("doc-1").partner_id == "p1"

    def test_document_without_partner_adopts_transaction_partner(
        self, service, store, make_document, make_transaction
    ) -> None:
        make_transaction(
            "tx-1",
            -10000,
            DAY,
            name="Acme GmbH",
            partner_id="p2",
            partner_type=PartnerType.USER,
            partner_matched_by=MatchedBy.MANUAL,
            partner_confidence=100,
        )
        make_document(amount=10000, date=DAY, partner_name="Acme GmbH")

        result = service.match("doc-1")

        assert result.partner_changed is True
        doc = store.get_document("doc-1")
        assert doc.partner_id == "p2"
        assert doc.partner_matched_by == MatchedBy.AUTO
