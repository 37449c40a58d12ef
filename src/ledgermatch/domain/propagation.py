"""Writing a document's partner onto its connected transactions."""

import logging

from ..ports.store import StorePort
from .conflicts import resolve_partner_conflict, synced_method
from .models import Document, PriorAssignment, Transaction

logger = logging.getLogger(__name__)


def sync_transaction(store: StorePort, document: Document, transaction: Transaction) -> bool:
    """Apply the conflict resolution for one pair. Returns True if written."""
    resolution = resolve_partner_conflict(
        document.partner_id, transaction.partner_id, transaction.partner_matched_by
    )
    if not resolution.sync:
        logger.debug(f"Transaction {transaction.id} unchanged: {resolution.reason}")
        return False

    changes = {
        "partner_id": document.partner_id,
        "partner_type": document.partner_type,
        "partner_matched_by": synced_method(document.partner_matched_by),
        "partner_confidence": document.partner_confidence,
    }
    if resolution.keep_prior:
        changes["prior_partner"] = PriorAssignment(
            partner_id=transaction.partner_id,
            partner_type=transaction.partner_type,
            matched_by=transaction.partner_matched_by,
            confidence=transaction.partner_confidence,
        )
    store.update_transaction(transaction.id, **changes)
    logger.info(f"Transaction {transaction.id} partner -> {document.partner_id} ({resolution.reason})")
    return True


def sync_connected_transactions(store: StorePort, document: Document) -> list[str]:
    """Sync every transaction connected to the document. Returns updated ids."""
    updated = []
    for transaction_id in document.transaction_ids:
        transaction = store.get_transaction(transaction_id)
        if transaction is None:
            logger.warning(f"Connected transaction missing: {transaction_id}")
            continue
        if sync_transaction(store, document, transaction):
            updated.append(transaction_id)
    return updated
