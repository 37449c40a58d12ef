"""Partner conflict resolution between a document and a transaction."""

from dataclasses import dataclass

from .models import MatchedBy


@dataclass(frozen=True)
class Resolution:
    """What to do with the transaction's partner assignment."""

    sync: bool
    keep_prior: bool = False
    reason: str = ""


NO_CHANGE = Resolution(sync=False)


def resolve_partner_conflict(
    document_partner_id: str | None,
    transaction_partner_id: str | None,
    transaction_matched_by: MatchedBy | None,
) -> Resolution:
    """Decide whether a document's partner overwrites a transaction's.

    The document is the primary evidence, so it wins, except against a
    manual assignment on the transaction. An overwritten assignment is kept
    as the transaction's prior partner.
    """
    if not document_partner_id:
        return Resolution(sync=False, reason="document has no partner")
    if not transaction_partner_id:
        return Resolution(sync=True, reason="transaction has no partner")
    if transaction_matched_by == MatchedBy.MANUAL:
        return Resolution(sync=False, reason="transaction partner is manual")
    if document_partner_id == transaction_partner_id:
        return Resolution(sync=False, reason="already in agreement")
    return Resolution(sync=True, keep_prior=True, reason="document partner wins")


def synced_method(document_matched_by: MatchedBy | None) -> MatchedBy:
    """Method recorded on a transaction that took over a document's partner."""
    return MatchedBy.MANUAL if document_matched_by == MatchedBy.MANUAL else MatchedBy.AUTO
