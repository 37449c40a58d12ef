"""Store adapter keeping records in process memory."""

import copy
import logging
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ...domain.models import (
    Connection,
    Document,
    OwnerProfile,
    Partner,
    Transaction,
    utcnow,
)
from ...errors import NotFoundError
from ...ports.store import StorePort

logger = logging.getLogger(__name__)

DOCUMENTS = "documents"
PARTNERS = "partners"
TRANSACTIONS = "transactions"
CONNECTIONS = "connections"
OWNERS = "owners"

COLLECTIONS = (DOCUMENTS, PARTNERS, TRANSACTIONS, CONNECTIONS, OWNERS)


def _union(current: list[str], additions: list[str]) -> list[str]:
    result = list(current)
    for item in additions:
        if item not in result:
            result.append(item)
    return result


class InMemoryStore(StorePort):
    """Thread-safe store over plain dictionaries.

    Records are copied on the way in and out, so callers never share state
    with the store. Subclasses persist changes by overriding ``_persist``
    and ``_forget``.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Any]] = {name: {} for name in COLLECTIONS}

    def _persist(self, collection: str, key: str, record: Any) -> None:
        pass

    def _forget(self, collection: str, key: str) -> None:
        pass

    def _put(self, collection: str, key: str, record: Any) -> None:
        with self._lock:
            self._data[collection][key] = copy.deepcopy(record)
            self._persist(collection, key, record)

    def _get(self, collection: str, key: str) -> Any:
        with self._lock:
            record = self._data[collection].get(key)
            return copy.deepcopy(record)

    def _values(self, collection: str) -> list[Any]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._data[collection].values()]

    def _update(self, collection: str, kind: str, key: str, changes: dict[str, Any]) -> Any:
        with self._lock:
            current = self._data[collection].get(key)
            if current is None:
                raise NotFoundError(kind, key)
            if hasattr(current, "updated_at") and "updated_at" not in changes:
                changes = {**changes, "updated_at": utcnow()}
            updated = replace(current, **changes)
            self._put(collection, key, updated)
            return copy.deepcopy(updated)

    def _change_list(self, collection: str, kind: str, key: str, attr: str, add: list[str], remove: list[str]) -> None:
        with self._lock:
            current = self._data[collection].get(key)
            if current is None:
                raise NotFoundError(kind, key)
            values = [v for v in _union(getattr(current, attr), add) if v not in remove]
            if values != getattr(current, attr):
                self._update(collection, kind, key, {attr: values})

    # Documents

    def get_document(self, document_id: str) -> Document | None:
        return self._get(DOCUMENTS, document_id)

    def save_document(self, document: Document) -> None:
        self._put(DOCUMENTS, document.id, document)

    def update_document(self, document_id: str, **changes: Any) -> Document:
        return self._update(DOCUMENTS, "document", document_id, changes)

    def documents_by_partner(self, partner_id: str) -> list[Document]:
        return [d for d in self._values(DOCUMENTS) if d.partner_id == partner_id]

    def unassigned_documents(self, owner_id: str | None = None) -> list[Document]:
        return [
            d
            for d in self._values(DOCUMENTS)
            if d.partner_id is None
            and d.partner_match_complete
            and (owner_id is None or d.owner_id == owner_id)
        ]

    def stalled_documents(self, stage: str, updated_before: datetime, limit: int) -> list[Document]:
        if stage == "partner":
            def pending(d: Document) -> bool:
                return d.extraction_complete and not d.partner_match_complete
        elif stage == "transaction":
            def pending(d: Document) -> bool:
                return d.partner_match_complete and not d.transaction_match_complete
        else:
            raise ValueError(f"Unknown stage: {stage}")

        docs = [d for d in self._values(DOCUMENTS) if pending(d) and d.updated_at < updated_before]
        docs.sort(key=lambda d: d.updated_at)
        return docs[:limit]

    def add_document_transactions(self, document_id: str, transaction_ids: list[str]) -> None:
        self._change_list(DOCUMENTS, "document", document_id, "transaction_ids", transaction_ids, [])

    def remove_document_transaction(self, document_id: str, transaction_id: str) -> None:
        self._change_list(DOCUMENTS, "document", document_id, "transaction_ids", [], [transaction_id])

    # Partners

    def get_partner(self, partner_id: str) -> Partner | None:
        return self._get(PARTNERS, partner_id)

    def save_partner(self, partner: Partner) -> None:
        self._put(PARTNERS, partner.id, partner)

    def update_partner(self, partner_id: str, **changes: Any) -> Partner:
        return self._update(PARTNERS, "partner", partner_id, changes)

    def user_partners(self, owner_id: str) -> list[Partner]:
        return [p for p in self._values(PARTNERS) if p.owner_id == owner_id]

    def shared_partners(self) -> list[Partner]:
        return [p for p in self._values(PARTNERS) if p.owner_id is None]

    def add_partner_aliases(self, partner_id: str, aliases: list[str]) -> None:
        self._change_list(PARTNERS, "partner", partner_id, "aliases", aliases, [])

    def add_partner_email_domains(self, partner_id: str, domains: list[str]) -> None:
        self._change_list(PARTNERS, "partner", partner_id, "email_domains", domains, [])

    # Transactions

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self._get(TRANSACTIONS, transaction_id)

    def save_transaction(self, transaction: Transaction) -> None:
        self._put(TRANSACTIONS, transaction.id, transaction)

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        return self._update(TRANSACTIONS, "transaction", transaction_id, changes)

    def transactions_in_window(self, owner_id: str, start: date, end: date, limit: int) -> list[Transaction]:
        txs = [t for t in self._values(TRANSACTIONS) if t.owner_id == owner_id and start <= t.date <= end]
        txs.sort(key=lambda t: t.date, reverse=True)
        return txs[:limit]

    def recent_transactions(self, owner_id: str, limit: int) -> list[Transaction]:
        txs = [t for t in self._values(TRANSACTIONS) if t.owner_id == owner_id]
        txs.sort(key=lambda t: t.date, reverse=True)
        return txs[:limit]

    def unassigned_transactions(self, owner_id: str | None, limit: int) -> list[Transaction]:
        txs = [
            t
            for t in self._values(TRANSACTIONS)
            if t.partner_id is None and (owner_id is None or t.owner_id == owner_id)
        ]
        txs.sort(key=lambda t: t.date, reverse=True)
        return txs[:limit]

    def add_transaction_documents(self, transaction_id: str, document_ids: list[str]) -> None:
        self._change_list(TRANSACTIONS, "transaction", transaction_id, "document_ids", document_ids, [])

    def remove_transaction_document(self, transaction_id: str, document_id: str) -> None:
        self._change_list(TRANSACTIONS, "transaction", transaction_id, "document_ids", [], [document_id])

    def add_rejected_document(self, transaction_id: str, document_id: str) -> None:
        self._change_list(TRANSACTIONS, "transaction", transaction_id, "rejected_document_ids", [document_id], [])

    # Connections

    def find_connection(self, document_id: str, transaction_id: str) -> Connection | None:
        for conn in self._values(CONNECTIONS):
            if conn.document_id == document_id and conn.transaction_id == transaction_id:
                return conn
        return None

    def create_connection(self, connection: Connection) -> bool:
        with self._lock:
            if self.find_connection(connection.document_id, connection.transaction_id):
                logger.debug(
                    f"Connection exists: {connection.document_id} <-> {connection.transaction_id}"
                )
                return False
            self._put(CONNECTIONS, connection.id, connection)
            return True

    def delete_connection(self, document_id: str, transaction_id: str) -> bool:
        with self._lock:
            conn = self.find_connection(document_id, transaction_id)
            if conn is None:
                return False
            del self._data[CONNECTIONS][conn.id]
            self._forget(CONNECTIONS, conn.id)
            return True

    def connections_for_document(self, document_id: str) -> list[Connection]:
        return [c for c in self._values(CONNECTIONS) if c.document_id == document_id]

    # Owners

    def get_owner_profile(self, owner_id: str) -> OwnerProfile | None:
        return self._get(OWNERS, owner_id)

    def save_owner_profile(self, profile: OwnerProfile) -> None:
        self._put(OWNERS, profile.owner_id, profile)
