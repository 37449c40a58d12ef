"""Unit tests for partner conflict resolution and propagation."""

from datetime import date

import pytest

from ledgermatch.domain.conflicts import resolve_partner_conflict, synced_method
from ledgermatch.domain.models import MatchedBy, PartnerType
from ledgermatch.domain.propagation import sync_connected_transactions, sync_transaction


class TestResolvePartnerConflict:
    def test_document_without_partner_changes_nothing(self) -> None:
        resolution = resolve_partner_conflict(None, "p1", MatchedBy.AUTO)
        assert resolution.sync is False

    def test_empty_transaction_takes_document_partner(self) -> None:
        resolution = resolve_partner_conflict("p1", None, None)
        assert resolution.sync is True
        assert resolution.keep_prior is False

    @pytest.mark.parametrize("tx_partner", ["p1", "p2"])
    def test_manual_transaction_partner_is_never_overwritten(self, tx_partner: str) -> None:
        resolution = resolve_partner_conflict("p1", tx_partner, MatchedBy.MANUAL)
        assert resolution.sync is False

    def test_agreement_is_a_no_op(self) -> None:
        assert resolve_partner_conflict("p1", "p1", MatchedBy.AUTO).sync is False

    @pytest.mark.parametrize("method", [MatchedBy.AUTO, MatchedBy.SUGGESTION, None])
    def test_document_wins_and_keeps_prior(self, method: MatchedBy | None) -> None:
        resolution = resolve_partner_conflict("p1", "p2", method)
        assert resolution.sync is True
        assert resolution.keep_prior is True


class TestSyncedMethod:
    def test_manual_stays_manual(self) -> None:
        assert synced_method(MatchedBy.MANUAL) == MatchedBy.MANUAL

    @pytest.mark.parametrize("method", [MatchedBy.AUTO, MatchedBy.SUGGESTION, None])
    def test_everything_else_is_auto(self, method: MatchedBy | None) -> None:
        assert synced_method(method) == MatchedBy.AUTO


class TestPropagation:
    def test_overwrite_records_prior(self, store, make_document, make_transaction) -> None:
        make_document(partner_name="Acme")
        store.update_document(
            "doc-1",
            partner_id="p1",
            partner_type=PartnerType.USER,
            partner_matched_by=MatchedBy.AUTO,
            partner_confidence=95,
        )
        make_transaction(
            "tx-1",
            -10000,
            date(2024, 3, 1),
            partner_id="p2",
            partner_type=PartnerType.USER,
            partner_matched_by=MatchedBy.AUTO,
            partner_confidence=70,
        )

        assert sync_transaction(store, store.get_document("doc-1"), store.get_transaction("tx-1")) is True

        tx = store.get_transaction("tx-1")
        assert tx.partner_id == "p1"
        assert tx.partner_matched_by == MatchedBy.AUTO
        assert tx.partner_confidence == 95
        assert tx.prior_partner.partner_id == "p2"
        assert tx.prior_partner.confidence == 70

    def test_manual_transaction_untouched(self, store, make_document, make_transaction) -> None:
        make_document()
        store.update_document("doc-1", partner_id="p1", partner_matched_by=MatchedBy.MANUAL)
        make_transaction("tx-1", -10000, date(2024, 3, 1), partner_id="p2", partner_matched_by=MatchedBy.MANUAL)

        assert sync_transaction(store, store.get_document("doc-1"), store.get_transaction("tx-1")) is False
        assert store.get_transaction("tx-1").partner_id == "p2"

    def test_sync_connected_skips_missing(self, store, make_document, make_transaction) -> None:
        make_document()
        make_transaction("tx-1", -10000, date(2024, 3, 1))
        store.update_document(
            "doc-1",
            partner_id="p1",
            partner_matched_by=MatchedBy.MANUAL,
            transaction_ids=["tx-1", "tx-gone"],
        )

        assert sync_connected_transactions(store, store.get_document("doc-1")) == ["tx-1"]
        assert store.get_transaction("tx-1").partner_matched_by == MatchedBy.MANUAL
