"""Document-to-transaction scoring.

Pure functions: every sub-score is capped on its own, summed, and the
total capped at 100. Nothing here touches the store.
"""

from dataclasses import dataclass, field
from datetime import date

from .models import Document, Partner, Transaction
from .normalize import invoice_numbers, normalize_iban, normalize_name, round_half_up

AUTO_MATCH_THRESHOLD = 85
SUGGESTION_THRESHOLD = 50
DEFAULT_CURRENCY = "EUR"

AMOUNT_EXACT = 40
DATE_EXACT = 25
DATE_BOOST_CAP = 37
DATE_BONUS_CAP = 25
PARTNER_ID_MATCH = 25
IBAN_MATCH = 10
REFERENCE_MATCH = 5
INVOICE_NUMBER_MATCH = 35
DATE_BONUS = 10


@dataclass
class ScoreBreakdown:
    amount: int = 0
    date: int = 0
    partner: int = 0
    iban: int = 0
    reference: int = 0
    invoice_number: int = 0

    @property
    def total(self) -> int:
        return min(
            100,
            self.amount + self.date + self.partner + self.iban + self.reference + self.invoice_number,
        )

    def format(self) -> str:
        parts = [f"{name}:{value}" for name, value in vars(self).items() if value > 0]
        return " + ".join(parts)


@dataclass
class TransactionScore:
    transaction_id: str
    confidence: int
    signals: list[str] = field(default_factory=list)
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


def amount_score(
    document_amount: int,
    transaction_amount: int,
    document_currency: str | None = None,
    transaction_currency: str | None = None,
) -> tuple[int, str | None]:
    """Score 0-40 by relative difference against the larger magnitude.

    A currency mismatch halves the score so same-currency candidates rank first.
    """
    a = abs(document_amount)
    b = abs(transaction_amount)
    if a == 0 or b == 0:
        return 0, None

    larger = max(a, b)
    diff = abs(a - b)
    if diff == 0:
        score, signal = AMOUNT_EXACT, "amount_exact"
    elif diff * 100 <= larger:
        score, signal = 38, "amount_close"
    elif diff * 100 <= larger * 5:
        score, signal = 30, "amount_close"
    elif diff * 100 <= larger * 10:
        score, signal = 20, "amount_close"
    else:
        return 0, None

    doc_currency = (document_currency or DEFAULT_CURRENCY).upper()
    tx_currency = (transaction_currency or DEFAULT_CURRENCY).upper()
    if doc_currency != tx_currency:
        score = round_half_up(score * 0.5)
        signal = "amount_foreign_currency"
    return score, signal


def date_score(document_date: date, transaction_date: date) -> tuple[int, str | None]:
    days = abs((document_date - transaction_date).days)
    if days == 0:
        return DATE_EXACT, "date_exact"
    if days <= 3:
        return 22, "date_close"
    if days <= 7:
        return 15, "date_close"
    if days <= 14:
        return 8, "date_close"
    if days <= 30:
        return 3, "date_close"
    return 0, None


def names_match(name1: str, name2: str) -> int:
    """Score 0-25 for an extracted name against bank free text.

    Exact normalized match is as strong as a partner id match (25),
    containment 18, two or more shared words 15, one shared word with a
    short name 12.
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)
    if not n1 or not n2:
        return 0
    if n1 == n2:
        return PARTNER_ID_MATCH
    if n1 in n2 or n2 in n1:
        return 18

    words1 = [w for w in n1.split(" ") if len(w) > 2]
    words2 = [w for w in n2.split(" ") if len(w) > 2]
    matching = [w for w in words1 if any(w == w2 or w in w2 or w2 in w for w2 in words2)]
    if len(matching) >= 2:
        return 15
    if matching and (len(words1) <= 2 or len(words2) <= 2):
        return 12
    return 0


def partner_score(
    document: Document,
    transaction: Transaction,
    partner: Partner | None = None,
) -> int:
    if document.partner_id and document.partner_id == transaction.partner_id:
        return PARTNER_ID_MATCH

    tx_name = transaction.name or transaction.counterparty or ""
    if not tx_name:
        return 0

    if document.fields.partner_name:
        score = names_match(document.fields.partner_name, tx_name)
        if score:
            return score

    if partner is not None:
        for alias in partner.plain_aliases:
            score = names_match(alias, tx_name)
            if score:
                return score
    return 0


def reference_matches(document: Document, transaction: Transaction) -> bool:
    """Transaction reference printed on the document, or the reverse."""
    text = (document.fields.text or "").lower()
    tx_ref = (transaction.reference or "").strip().lower()
    if len(tx_ref) >= 3 and tx_ref in text:
        return True
    doc_ref = (document.fields.reference or "").strip().lower()
    return len(doc_ref) >= 3 and doc_ref in tx_ref


def invoice_number_matches(document: Document, transaction: Transaction) -> bool:
    doc_numbers = invoice_numbers(document.filename, document.fields.reference)
    if not doc_numbers:
        return False
    tx_numbers = invoice_numbers(transaction.name, transaction.reference, transaction.counterparty)
    return bool(doc_numbers & tx_numbers)


def score_transaction(
    document: Document,
    transaction: Transaction,
    partner: Partner | None = None,
) -> TransactionScore:
    """Score one candidate transaction for a document.

    ``partner`` is the document's assigned partner, used for alias matching.
    """
    fields = document.fields
    breakdown = ScoreBreakdown()
    signals: list[str] = []

    if fields.amount is not None:
        breakdown.amount, signal = amount_score(
            fields.amount, transaction.amount, fields.currency, transaction.currency
        )
        if signal:
            signals.append(signal)

    if fields.date is not None:
        breakdown.date, signal = date_score(fields.date, transaction.date)
        if signal:
            signals.append(signal)

    breakdown.partner = partner_score(document, transaction, partner)
    if breakdown.partner:
        signals.append("partner")

    # Recurring invoices from one partner must land on the right month
    if breakdown.partner >= 15 and fields.date is not None:
        if breakdown.date >= 15:
            breakdown.date = min(DATE_BOOST_CAP, round_half_up(breakdown.date * 1.5))
        elif breakdown.date <= 3:
            breakdown.partner = round_half_up(breakdown.partner * 0.6)

    if fields.iban and transaction.iban:
        if normalize_iban(fields.iban) == normalize_iban(transaction.iban):
            breakdown.iban = IBAN_MATCH
            signals.append("iban")

    if reference_matches(document, transaction):
        breakdown.reference = REFERENCE_MATCH
        signals.append("reference")
        if breakdown.date < 15:
            breakdown.date = min(DATE_BONUS_CAP, breakdown.date + DATE_BONUS)

    if invoice_number_matches(document, transaction):
        breakdown.invoice_number = INVOICE_NUMBER_MATCH
        signals.append("invoice_number")
        if breakdown.date < 15:
            breakdown.date = min(DATE_BONUS_CAP, breakdown.date + DATE_BONUS)

    return TransactionScore(
        transaction_id=transaction.id,
        confidence=breakdown.total,
        signals=signals,
        breakdown=breakdown,
    )


def rank_transactions(
    document: Document,
    transactions: list[Transaction],
    partner: Partner | None = None,
    suggestion_threshold: int = SUGGESTION_THRESHOLD,
    max_suggestions: int = 5,
) -> list[TransactionScore]:
    """Score eligible candidates and keep the best ones above the threshold.

    Skips transactions already connected to the document and those on which
    the user rejected this document.
    """
    connected = set(document.transaction_ids)
    scores = [
        score_transaction(document, tx, partner)
        for tx in transactions
        if tx.id not in connected and document.id not in tx.rejected_document_ids
    ]
    scores = [s for s in scores if s.confidence >= suggestion_threshold]
    scores.sort(key=lambda s: s.confidence, reverse=True)
    return scores[:max_suggestions]
