"""Partner assignment for bank transactions."""

import logging

from ..config import MatchingConfig
from ..ports.store import StorePort
from .models import ExtractedFields, MatchedBy, PartnerSuggestion, PartnerType, Transaction
from .partner_matcher import PartnerMatchingService
from .partner_rules import PartnerMatch, match_all_partners

logger = logging.getLogger(__name__)


def transaction_texts(transaction: Transaction) -> list[str]:
    """Payee texts to match on: counterparty first, then the booking name."""
    texts = [t.strip() for t in (transaction.counterparty, transaction.name) if t and t.strip()]
    return list(dict.fromkeys(texts))


def best_matches(matches: list[PartnerMatch]) -> list[PartnerMatch]:
    """Keep the best match per partner, sorted like ``match_all_partners``."""
    best: dict[str, PartnerMatch] = {}
    for match in matches:
        current = best.get(match.partner_id)
        if current is None or match.confidence > current.confidence:
            best[match.partner_id] = match
    results = list(best.values())
    results.sort(key=lambda m: (-m.confidence, m.partner_type != PartnerType.USER))
    return results


class TransactionPartnerService:
    """Assigns partners to unassigned bank transactions by IBAN or payee name.

    Transactions that already carry a partner, whether set by hand or synced
    from a document, are left alone.
    """

    def __init__(
        self,
        store: StorePort,
        partners: PartnerMatchingService,
        config: MatchingConfig | None = None,
    ) -> None:
        self.store = store
        self.partners = partners
        self.config = config or MatchingConfig()

    def candidates(self, transaction: Transaction) -> list[PartnerMatch]:
        user_partners = self.store.user_partners(transaction.owner_id)
        shared_partners = self.store.shared_partners()
        texts = transaction_texts(transaction) or [None]
        matches = []
        for text in texts:
            fields = ExtractedFields(partner_name=text, iban=transaction.iban)
            matches.extend(match_all_partners(fields, user_partners, shared_partners))
        return best_matches(matches)

    def match(self, transaction_id: str) -> PartnerMatch | None:
        """Match one transaction; returns the applied match, if any."""
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            logger.warning(f"Transaction not found: {transaction_id}")
            return None
        if transaction.partner_id:
            logger.debug(f"Transaction {transaction_id} already has partner {transaction.partner_id}")
            return None

        matches = self.candidates(transaction)
        suggestions = [
            PartnerSuggestion(
                partner_id=m.partner_id,
                partner_type=m.partner_type,
                confidence=m.confidence,
                source=m.source,
            )
            for m in matches[: self.config.partner_suggestions]
        ]

        if not matches or matches[0].confidence < self.config.partner_auto_threshold:
            if suggestions or transaction.partner_suggestions:
                self.store.update_transaction(transaction_id, partner_suggestions=suggestions)
            return None

        top = matches[0]
        partner = self.store.get_partner(top.partner_id)
        if partner is None:
            logger.warning(f"Matched partner {top.partner_id} disappeared")
            return None
        if partner.partner_type == PartnerType.SHARED:
            partner = self.partners.localize(transaction.owner_id, partner)

        logger.info(f"Transaction {transaction_id} -> partner {partner.id} ({top.source} {top.confidence})")
        self.store.update_transaction(
            transaction_id,
            partner_id=partner.id,
            partner_type=partner.partner_type,
            partner_matched_by=MatchedBy.AUTO,
            partner_confidence=top.confidence,
            partner_suggestions=suggestions,
        )
        return top
