"""Over-matching guard for auto-connections."""

from .models import Document, Transaction

DEFAULT_TOLERANCE = 0.10


def covered_amount(transaction: Transaction, connected: list[Document], exclude_id: str | None = None) -> int:
    """Sum of absolute extracted amounts of live documents on the transaction."""
    return sum(
        abs(doc.fields.amount or 0)
        for doc in connected
        if not doc.deleted and doc.id != exclude_id
    )


def is_covered(
    transaction: Transaction,
    connected: list[Document],
    exclude_id: str | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """Whether connected documents already pay for the transaction.

    Several monthly invoices can each score high against one payment; once
    the connected amounts come within ``tolerance`` of it, no more auto-attach.
    """
    target = abs(transaction.amount)
    if target == 0:
        return False
    covered = covered_amount(transaction, connected, exclude_id)
    return covered >= target * (1 - tolerance)
