"""Transaction matching stage."""

import logging
from datetime import timedelta

from ..config import MatchingConfig
from ..ports.notifications import NotificationPort
from ..ports.store import StorePort
from .coverage import is_covered
from .models import (
    Connection,
    ConnectionMethod,
    Document,
    MatchedBy,
    Notification,
    StageResult,
    Transaction,
    TransactionSuggestion,
    new_id,
    utcnow,
)
from .propagation import sync_transaction
from .transaction_scoring import TransactionScore, rank_transactions

logger = logging.getLogger(__name__)

STAGE = "transaction"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class TransactionMatchingService:
    """Connects a document to the bank transaction(s) it settles."""

    def __init__(
        self,
        store: StorePort,
        notifier: NotificationPort | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.config = config or MatchingConfig()

    def match(self, document_id: str) -> StageResult:
        """Run the transaction stage for one document.

        Always leaves the stage complete; unexpected failures are stored in
        ``last_error`` with empty suggestions.
        """
        result = StageResult(document_id=document_id, stage=STAGE)
        document = self.store.get_document(document_id)
        if document is None:
            logger.warning(f"Document not found: {document_id}")
            result.skipped = "not found"
            return result
        if document.deleted:
            result.skipped = "deleted"
            return result

        try:
            self._match(document, result)
        except Exception as e:
            logger.exception(f"Transaction matching failed for {document_id}")
            result.errors.append(str(e))
            self._complete(document_id, transaction_suggestions=[], last_error=str(e))
            return result

        if result.connected or result.suggestions:
            self._notify(document, result)
        return result

    def _complete(self, document_id: str, **changes) -> Document:
        return self.store.update_document(
            document_id,
            transaction_match_complete=True,
            transaction_matched_at=utcnow(),
            **changes,
        )

    def candidates(self, document: Document) -> list[Transaction]:
        """Owner's transactions around the document date, newest first."""
        doc_date = document.fields.date
        if doc_date is None:
            return self.store.recent_transactions(document.owner_id, self.config.recent_fallback)
        window = timedelta(days=self.config.date_window_days)
        return self.store.transactions_in_window(
            document.owner_id, doc_date - window, doc_date + window, self.config.window_limit
        )

    def _match(self, document: Document, result: StageResult) -> None:
        if document.not_invoice or document.extraction_error:
            result.skipped = "not an invoice" if document.not_invoice else "extraction failed"
            self._complete(document.id, transaction_suggestions=[], last_error=None)
            return

        transactions = self.candidates(document)
        if not transactions:
            logger.info(f"No transactions found for document {document.id}")
            self._complete(document.id, transaction_suggestions=[], last_error=None)
            return

        partner = self.store.get_partner(document.partner_id) if document.partner_id else None
        scores = rank_transactions(
            document,
            transactions,
            partner,
            suggestion_threshold=self.config.transaction_suggestion_threshold,
            max_suggestions=self.config.transaction_suggestions,
        )
        result.suggestions = len(scores)
        by_id = {tx.id: tx for tx in transactions}

        for score in scores:
            if score.confidence < self.config.transaction_auto_threshold:
                continue
            transaction = by_id[score.transaction_id]
            if self._covered(document, transaction):
                logger.info(
                    f"Transaction {transaction.id} already covered, keeping as suggestion for {document.id}"
                )
                continue
            if self._connect(document, transaction, score):
                result.connected.append(transaction.id)

        suggestions = [
            TransactionSuggestion(transaction_id=s.transaction_id, confidence=s.confidence, signals=s.signals)
            for s in scores
        ]
        updated = self._complete(document.id, transaction_suggestions=suggestions, last_error=None)
        logger.info(
            f"Transaction matching complete for {document.id}: "
            f"{len(result.connected)} auto-matched, {len(suggestions)} suggestions"
        )

        for transaction_id in result.connected:
            updated = self._propagate(updated, transaction_id, result)

    def _covered(self, document: Document, transaction: Transaction) -> bool:
        connected = [
            doc
            for doc_id in transaction.document_ids
            if doc_id != document.id and (doc := self.store.get_document(doc_id)) is not None
        ]
        return is_covered(transaction, connected, exclude_id=document.id, tolerance=self.config.coverage_tolerance)

    def _connect(self, document: Document, transaction: Transaction, score: TransactionScore) -> bool:
        connection = Connection(
            id=new_id(),
            document_id=document.id,
            transaction_id=transaction.id,
            owner_id=document.owner_id,
            method=ConnectionMethod.AUTO,
            signals=list(score.signals),
            confidence=score.confidence,
        )
        created = self.store.create_connection(connection)
        # Unions are safe to repeat when the connection already existed
        self.store.add_transaction_documents(transaction.id, [document.id])
        self.store.add_document_transactions(document.id, [transaction.id])
        if created:
            logger.info(
                f"Connected {document.id} <-> {transaction.id} ({score.confidence}: {score.breakdown.format()})"
            )
        return created

    def _propagate(self, document: Document, transaction_id: str, result: StageResult) -> Document:
        """Reconcile partners between the document and a new connection."""
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            return document

        if document.partner_id:
            sync_transaction(self.store, document, transaction)
            return document

        if transaction.partner_id:
            logger.info(f"Document {document.id} adopts partner {transaction.partner_id} from {transaction.id}")
            document = self.store.update_document(
                document.id,
                partner_id=transaction.partner_id,
                partner_type=transaction.partner_type,
                partner_matched_by=MatchedBy.AUTO,
                partner_confidence=transaction.partner_confidence,
            )
            result.partner_id = transaction.partner_id
            result.partner_changed = True
        return document

    def _notify(self, document: Document, result: StageResult) -> None:
        if self.notifier is None:
            return

        matched = len(result.connected)
        if matched:
            title = f"Matched {_plural(matched, 'transaction')} to file"
            message = f"Your uploaded file was automatically matched to {_plural(matched, 'transaction')}."
            if result.suggestions > matched:
                message += f" Review {_plural(result.suggestions - matched, 'more suggestion')}."
        else:
            title = f"Found {_plural(result.suggestions, 'transaction suggestion')}"
            message = "Found potential transaction matches for your uploaded file. Please review and confirm."

        notification = Notification(
            kind="document_transaction_match",
            title=title,
            message=message,
            context={
                "document_id": document.id,
                "auto_match_count": matched,
                "suggestion_count": result.suggestions,
            },
        )
        try:
            self.notifier.notify(document.owner_id, notification)
        except Exception as e:
            logger.warning(f"Failed to send notification for {document.id}: {e}")
