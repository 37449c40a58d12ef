"""Reconciliation engine - the surface the rest of the product talks to."""

import logging

from .config import MatchingConfig
from .domain.models import (
    Connection,
    ConnectionMethod,
    Document,
    ExtractedFields,
    MatchedBy,
    Partner,
    PartnerType,
    StageResult,
    Transaction,
    new_id,
    utcnow,
)
from .domain.partner_matcher import PartnerMatchingService
from .domain.propagation import sync_connected_transactions, sync_transaction
from .domain.transaction_matcher import TransactionMatchingService
from .domain.transaction_partners import TransactionPartnerService
from .errors import ExtractionError, NotFoundError
from .events import (
    DetachPartner,
    DocumentPartnerChanged,
    Event,
    ExtractionCompleted,
    PartnerDeactivated,
    PartnerMatchCompleted,
    PartnerUpdated,
    RematchDocument,
    RematchTransaction,
    StageFailed,
    TransactionAdded,
)
from .ports.extraction import ExtractionPort
from .ports.notifications import NotificationPort
from .ports.reasoning import ReasoningPort
from .ports.store import StorePort
from .ports.vat_registry import VatRegistryPort

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Runs the matching stages and applies user actions.

    Every method returns the follow-up events it produced; a ``Dispatcher``
    (or the caller) feeds them back into ``handle``.
    """

    def __init__(
        self,
        store: StorePort,
        extraction: ExtractionPort | None = None,
        reasoning: ReasoningPort | None = None,
        vat_registry: VatRegistryPort | None = None,
        notifier: NotificationPort | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        self.store = store
        self.extraction = extraction
        self.config = config or MatchingConfig()
        self.partners = PartnerMatchingService(store, reasoning, vat_registry, self.config)
        self.transactions = TransactionMatchingService(store, notifier, self.config)
        self.transaction_partners = TransactionPartnerService(store, self.partners, self.config)
        self._handlers = {
            ExtractionCompleted: self._on_extraction_completed,
            PartnerMatchCompleted: self._on_partner_match_completed,
            DocumentPartnerChanged: self._on_document_partner_changed,
            StageFailed: self._on_stage_failed,
            PartnerUpdated: self._on_partner_updated,
            RematchDocument: self._on_rematch_document,
            PartnerDeactivated: self._on_partner_deactivated,
            DetachPartner: self._on_detach_partner,
            TransactionAdded: self._on_transaction_changed,
            RematchTransaction: self._on_transaction_changed,
        }

    def handle(self, event: Event) -> list[Event]:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise ValueError(f"Unknown event: {event!r}")
        logger.debug(f"Handling {event}")
        return handler(event)

    # Lookups

    def _document(self, document_id: str) -> Document:
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError("document", document_id)
        return document

    def _partner(self, partner_id: str) -> Partner:
        partner = self.store.get_partner(partner_id)
        if partner is None:
            raise NotFoundError("partner", partner_id)
        return partner

    def _transaction(self, transaction_id: str) -> Transaction:
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    # Extraction

    def mark_extraction_complete(self, document_id: str, fields: ExtractedFields) -> list[Event]:
        """Store extracted fields and start matching."""
        self._document(document_id)
        self.store.update_document(
            document_id,
            fields=fields,
            extraction_complete=True,
            extraction_completed_at=utcnow(),
            extraction_error=None,
            not_invoice=not fields.is_invoice,
            partner_match_complete=False,
            transaction_match_complete=False,
        )
        return [ExtractionCompleted(document_id)]

    def process_extraction(self, document_id: str, text: str) -> list[Event]:
        """Run the extraction collaborator over document text.

        A failed extraction is recorded on the document and ends the pipeline.
        """
        if self.extraction is None:
            raise ExtractionError("No extraction adapter configured")
        self._document(document_id)

        try:
            fields = self.extraction.extract(text)
        except ExtractionError as e:
            logger.error(f"Extraction failed for {document_id}: {e}")
            self.store.update_document(
                document_id,
                extraction_complete=True,
                extraction_completed_at=utcnow(),
                extraction_error=str(e),
            )
            return []
        return self.mark_extraction_complete(document_id, fields)

    # User actions

    def assign_partner_to_document(self, document_id: str, partner_id: str) -> list[Event]:
        document = self._document(document_id)
        partner = self._partner(partner_id)
        if partner.partner_type == PartnerType.SHARED:
            partner = self.partners.localize(document.owner_id, partner)

        self.store.update_document(
            document_id,
            partner_id=partner.id,
            partner_type=partner.partner_type,
            partner_matched_by=MatchedBy.MANUAL,
            partner_confidence=100,
        )
        logger.info(f"Document {document_id} manually assigned to {partner.id}")
        return [DocumentPartnerChanged(document_id)]

    def assign_partner_to_transaction(self, transaction_id: str, partner_id: str) -> list[Event]:
        transaction = self._transaction(transaction_id)
        partner = self._partner(partner_id)
        if partner.partner_type == PartnerType.SHARED:
            partner = self.partners.localize(transaction.owner_id, partner)

        self.store.update_transaction(
            transaction_id,
            partner_id=partner.id,
            partner_type=partner.partner_type,
            partner_matched_by=MatchedBy.MANUAL,
            partner_confidence=100,
        )
        logger.info(f"Transaction {transaction_id} manually assigned to {partner.id}")
        return []

    def connect_document(self, document_id: str, transaction_id: str) -> list[Event]:
        """Manually connect a document to a transaction."""
        document = self._document(document_id)
        transaction = self._transaction(transaction_id)

        created = self.store.create_connection(
            Connection(
                id=new_id(),
                document_id=document_id,
                transaction_id=transaction_id,
                owner_id=document.owner_id,
                method=ConnectionMethod.MANUAL,
            )
        )
        self.store.add_transaction_documents(transaction_id, [document_id])
        self.store.add_document_transactions(document_id, [transaction_id])
        if created:
            logger.info(f"Manually connected {document_id} <-> {transaction_id}")

        if document.partner_id:
            sync_transaction(self.store, document, transaction)
            return []
        if transaction.partner_id:
            self.store.update_document(
                document_id,
                partner_id=transaction.partner_id,
                partner_type=transaction.partner_type,
                partner_matched_by=MatchedBy.AUTO,
                partner_confidence=transaction.partner_confidence,
            )
            return [DocumentPartnerChanged(document_id)]
        return []

    def reject_document_for_transaction(self, transaction_id: str, document_id: str) -> list[Event]:
        """Disconnect a document and never propose it for this transaction again."""
        document = self._document(document_id)
        self._transaction(transaction_id)

        self.store.add_rejected_document(transaction_id, document_id)
        if self.store.delete_connection(document_id, transaction_id):
            logger.info(f"Removed connection {document_id} <-> {transaction_id}")
        self.store.remove_transaction_document(transaction_id, document_id)
        self.store.remove_document_transaction(document_id, transaction_id)
        self.store.update_document(
            document_id,
            transaction_suggestions=[
                s for s in document.transaction_suggestions if s.transaction_id != transaction_id
            ],
        )
        return []

    def add_transaction(self, transaction: Transaction) -> list[Event]:
        """Store an imported bank transaction and try to find its partner."""
        self.store.save_transaction(transaction)
        return [TransactionAdded(transaction.id)]

    def create_partner(self, partner: Partner) -> list[Event]:
        """Store a new partner; documents and transactions are re-evaluated against it."""
        self.store.save_partner(partner)
        logger.info(f"Created partner {partner.id} ({partner.name})")
        return [PartnerUpdated(partner.id)]

    def partner_updated(self, partner_id: str, **changes) -> list[Event]:
        """Apply partner edits and re-evaluate affected documents."""
        self._partner(partner_id)
        if changes:
            self.store.update_partner(partner_id, **changes)
        return [PartnerUpdated(partner_id)]

    def deactivate_partner(self, partner_id: str) -> list[Event]:
        self._partner(partner_id)
        self.store.update_partner(partner_id, active=False)
        logger.info(f"Deactivated partner {partner_id}")
        return [PartnerDeactivated(partner_id)]

    # Event handlers

    def _on_extraction_completed(self, event: ExtractionCompleted) -> list[Event]:
        result = self.partners.match(event.document_id)
        if result.skipped in ("not found", "deleted"):
            return []
        return [*self._failures(result), PartnerMatchCompleted(event.document_id)]

    def _on_partner_match_completed(self, event: PartnerMatchCompleted) -> list[Event]:
        result = self.transactions.match(event.document_id)
        follow_ups = self._failures(result)
        if result.partner_changed:
            follow_ups.append(DocumentPartnerChanged(event.document_id))
        return follow_ups

    def _failures(self, result: StageResult) -> list[Event]:
        if result.success:
            return []
        return [StageFailed(result.document_id, result.stage, "; ".join(result.errors))]

    def _on_stage_failed(self, event: StageFailed) -> list[Event]:
        logger.warning(f"{event.stage} stage failed for {event.document_id}: {event.error}")
        return []

    def _on_document_partner_changed(self, event: DocumentPartnerChanged) -> list[Event]:
        document = self.store.get_document(event.document_id)
        if document is None or not document.partner_id:
            return []
        self.partners.learn_from_document(document.id)
        sync_connected_transactions(self.store, document)
        return []

    def _on_partner_updated(self, event: PartnerUpdated) -> list[Event]:
        partner = self.store.get_partner(event.partner_id)
        if partner is None or not partner.active:
            logger.info(f"Partner {event.partner_id} missing or inactive, skipping re-evaluation")
            return []

        auto_matched = [
            d for d in self.store.documents_by_partner(partner.id) if d.partner_matched_by == MatchedBy.AUTO
        ]
        unmatched = self.store.unassigned_documents(partner.owner_id)
        document_ids = list(dict.fromkeys(d.id for d in [*auto_matched, *unmatched] if not d.deleted))
        transactions = self.store.unassigned_transactions(partner.owner_id, self.config.window_limit)
        logger.info(
            f"Partner {partner.id} updated, re-evaluating {len(document_ids)} documents "
            f"and {len(transactions)} transactions"
        )
        return [
            *(RematchDocument(document_id) for document_id in document_ids),
            *(RematchTransaction(t.id) for t in transactions),
        ]

    def _on_rematch_document(self, event: RematchDocument) -> list[Event]:
        if self.partners.rematch_directory(event.document_id):
            return [PartnerMatchCompleted(event.document_id)]
        return []

    def _on_partner_deactivated(self, event: PartnerDeactivated) -> list[Event]:
        return [
            DetachPartner(document.id, event.partner_id)
            for document in self.store.documents_by_partner(event.partner_id)
            if not document.deleted and not document.has_manual_partner
        ]

    def _on_detach_partner(self, event: DetachPartner) -> list[Event]:
        document = self.store.get_document(event.document_id)
        # Re-checked under the document key; the assignment may have moved on
        if document is None or document.partner_id != event.partner_id or document.has_manual_partner:
            return []
        logger.info(f"Clearing deactivated partner {event.partner_id} from {document.id}")
        self.store.update_document(
            document.id,
            partner_id=None,
            partner_type=None,
            partner_matched_by=None,
            partner_confidence=None,
            partner_match_complete=False,
        )
        return [ExtractionCompleted(document.id)]

    def _on_transaction_changed(self, event: TransactionAdded | RematchTransaction) -> list[Event]:
        self.transaction_partners.match(event.transaction_id)
        return []
