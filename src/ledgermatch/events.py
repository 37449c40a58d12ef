"""Typed pipeline events.

Handlers are idempotent; the recovery sweep raises the same events the
live pipeline does. Partner-level events fan out into one event per
document or transaction, so every write to a record happens under that
record's key.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionCompleted:
    """Extraction wrote fields; run the partner stage."""

    document_id: str


@dataclass(frozen=True)
class PartnerMatchCompleted:
    """Partner stage finished; run the transaction stage."""

    document_id: str


@dataclass(frozen=True)
class DocumentPartnerChanged:
    """A document's partner was set outside the partner stage."""

    document_id: str


@dataclass(frozen=True)
class StageFailed:
    """A stage hit an unexpected error; the stage is still marked complete."""

    document_id: str
    stage: str
    error: str


@dataclass(frozen=True)
class RematchDocument:
    """Re-evaluate one document against the partner directory."""

    document_id: str


@dataclass(frozen=True)
class DetachPartner:
    """Remove a deactivated partner from one document and re-run matching."""

    document_id: str
    partner_id: str


@dataclass(frozen=True)
class TransactionAdded:
    transaction_id: str


@dataclass(frozen=True)
class RematchTransaction:
    """Try to assign a partner to one unassigned transaction."""

    transaction_id: str


@dataclass(frozen=True)
class PartnerUpdated:
    partner_id: str


@dataclass(frozen=True)
class PartnerDeactivated:
    partner_id: str


Event = (
    ExtractionCompleted
    | PartnerMatchCompleted
    | DocumentPartnerChanged
    | StageFailed
    | RematchDocument
    | DetachPartner
    | TransactionAdded
    | RematchTransaction
    | PartnerUpdated
    | PartnerDeactivated
)


def lock_key(event: Event) -> str:
    """Events sharing a key never run concurrently."""
    document_id = getattr(event, "document_id", None)
    if document_id is not None:
        return f"document:{document_id}"
    transaction_id = getattr(event, "transaction_id", None)
    if transaction_id is not None:
        return f"transaction:{transaction_id}"
    return f"partner:{event.partner_id}"
