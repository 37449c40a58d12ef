"""Store port - interface for persistent records.

Getters return detached copies; callers change records through the
``update_*`` and ``add_*``/``remove_*`` methods, which apply to a single
record atomically. List fields holding ids are only changed by set-union
or set-removal so concurrent writers never lose each other's entries.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..domain.models import Connection, Document, OwnerProfile, Partner, Transaction


class StorePort(ABC):
    """Interface for document, partner, transaction and connection storage."""

    # Documents

    @abstractmethod
    def get_document(self, document_id: str) -> "Document | None":
        pass

    @abstractmethod
    def save_document(self, document: "Document") -> None:
        """Insert or replace a document."""
        pass

    @abstractmethod
    def update_document(self, document_id: str, **changes: Any) -> "Document":
        """Set the given fields and bump ``updated_at``.

        Raises NotFoundError for an unknown id.
        """
        pass

    @abstractmethod
    def documents_by_partner(self, partner_id: str) -> "list[Document]":
        pass

    @abstractmethod
    def unassigned_documents(self, owner_id: str | None = None) -> "list[Document]":
        """Documents with a completed partner stage but no partner.

        ``owner_id`` None means all owners.
        """
        pass

    @abstractmethod
    def stalled_documents(
        self,
        stage: str,
        updated_before: datetime,
        limit: int,
    ) -> "list[Document]":
        """Documents whose previous stage is complete but ``stage`` is not.

        ``stage`` is "partner" or "transaction". Oldest ``updated_at`` first.
        """
        pass

    @abstractmethod
    def add_document_transactions(self, document_id: str, transaction_ids: list[str]) -> None:
        pass

    @abstractmethod
    def remove_document_transaction(self, document_id: str, transaction_id: str) -> None:
        pass

    # Partners

    @abstractmethod
    def get_partner(self, partner_id: str) -> "Partner | None":
        pass

    @abstractmethod
    def save_partner(self, partner: "Partner") -> None:
        pass

    @abstractmethod
    def update_partner(self, partner_id: str, **changes: Any) -> "Partner":
        pass

    @abstractmethod
    def user_partners(self, owner_id: str) -> "list[Partner]":
        """Active and inactive partners owned by ``owner_id``."""
        pass

    @abstractmethod
    def shared_partners(self) -> "list[Partner]":
        pass

    @abstractmethod
    def add_partner_aliases(self, partner_id: str, aliases: list[str]) -> None:
        pass

    @abstractmethod
    def add_partner_email_domains(self, partner_id: str, domains: list[str]) -> None:
        pass

    # Transactions

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> "Transaction | None":
        pass

    @abstractmethod
    def save_transaction(self, transaction: "Transaction") -> None:
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: str, **changes: Any) -> "Transaction":
        pass

    @abstractmethod
    def transactions_in_window(
        self,
        owner_id: str,
        start: date,
        end: date,
        limit: int,
    ) -> "list[Transaction]":
        """Owner's transactions dated within [start, end], newest first."""
        pass

    @abstractmethod
    def recent_transactions(self, owner_id: str, limit: int) -> "list[Transaction]":
        pass

    @abstractmethod
    def unassigned_transactions(self, owner_id: str | None, limit: int) -> "list[Transaction]":
        """Transactions without a partner, newest first.

        ``owner_id`` None means all owners.
        """
        pass

    @abstractmethod
    def add_transaction_documents(self, transaction_id: str, document_ids: list[str]) -> None:
        pass

    @abstractmethod
    def remove_transaction_document(self, transaction_id: str, document_id: str) -> None:
        pass

    @abstractmethod
    def add_rejected_document(self, transaction_id: str, document_id: str) -> None:
        pass

    # Connections

    @abstractmethod
    def find_connection(self, document_id: str, transaction_id: str) -> "Connection | None":
        pass

    @abstractmethod
    def create_connection(self, connection: "Connection") -> bool:
        """Create the connection unless the pair already exists.

        Returns True when a new connection was written.
        """
        pass

    @abstractmethod
    def delete_connection(self, document_id: str, transaction_id: str) -> bool:
        pass

    @abstractmethod
    def connections_for_document(self, document_id: str) -> "list[Connection]":
        pass

    # Owners

    @abstractmethod
    def get_owner_profile(self, owner_id: str) -> "OwnerProfile | None":
        pass

    @abstractmethod
    def save_owner_profile(self, profile: "OwnerProfile") -> None:
        pass
