"""Domain models."""

import datetime as dt
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class MatchedBy(str, Enum):
    """How a partner assignment was made."""

    MANUAL = "manual"
    SUGGESTION = "suggestion"
    AUTO = "auto"


class PartnerType(str, Enum):
    """Scope of a partner record."""

    USER = "user"
    SHARED = "shared"


class ConnectionMethod(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass
class ExtractedFields:
    """Structured fields produced by extraction."""

    partner_name: str | None = None
    iban: str | None = None
    vat_id: str | None = None
    amount: int | None = None  # Minor units, sign as printed
    currency: str | None = None
    date: dt.date | None = None
    text: str | None = None
    reference: str | None = None  # Invoice number as printed
    sender_email: str | None = None
    sender_domain: str | None = None
    website: str | None = None
    is_invoice: bool = True

    def has_partner_signals(self) -> bool:
        return bool(self.partner_name or self.iban or self.vat_id or self.sender_domain)


@dataclass
class PartnerSuggestion:
    partner_id: str
    partner_type: PartnerType
    confidence: int
    source: str


@dataclass
class TransactionSuggestion:
    transaction_id: str
    confidence: int
    signals: list[str] = field(default_factory=list)


@dataclass
class Document:
    """One uploaded invoice/receipt and its pipeline state."""

    id: str
    owner_id: str
    filename: str = ""
    fields: ExtractedFields = field(default_factory=ExtractedFields)

    extraction_complete: bool = False
    extraction_completed_at: datetime | None = None
    extraction_error: str | None = None
    not_invoice: bool = False

    partner_match_complete: bool = False
    partner_matched_at: datetime | None = None
    transaction_match_complete: bool = False
    transaction_matched_at: datetime | None = None

    partner_id: str | None = None
    partner_type: PartnerType | None = None
    partner_matched_by: MatchedBy | None = None
    partner_confidence: int | None = None
    partner_suggestions: list[PartnerSuggestion] = field(default_factory=list)

    transaction_ids: list[str] = field(default_factory=list)
    transaction_suggestions: list[TransactionSuggestion] = field(default_factory=list)

    last_error: str | None = None
    deleted: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def has_manual_partner(self) -> bool:
        return self.partner_id is not None and self.partner_matched_by == MatchedBy.MANUAL


@dataclass
class Partner:
    """A counterparty, either user-scoped (owner_id set) or shared."""

    id: str
    name: str
    owner_id: str | None = None
    aliases: list[str] = field(default_factory=list)
    ibans: list[str] = field(default_factory=list)
    vat_id: str | None = None
    website: str | None = None  # Bare domain, e.g. "amazon.de"
    email_domains: list[str] = field(default_factory=list)
    shared_partner_id: str | None = None
    country: str | None = None
    address: str | None = None
    vat_verified: bool = False
    created_by: str = "user"
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def partner_type(self) -> PartnerType:
        return PartnerType.SHARED if self.owner_id is None else PartnerType.USER

    @property
    def plain_aliases(self) -> list[str]:
        return [a for a in self.aliases if "*" not in a]

    @property
    def alias_patterns(self) -> list[str]:
        return [a for a in self.aliases if "*" in a]


@dataclass
class PriorAssignment:
    """Transaction partner assignment replaced by a document's partner."""

    partner_id: str
    partner_type: PartnerType | None = None
    matched_by: MatchedBy | None = None
    confidence: int | None = None


@dataclass
class Transaction:
    """One bank ledger entry."""

    id: str
    owner_id: str
    amount: int  # Minor units, signed
    date: dt.date
    currency: str = "EUR"
    name: str = ""
    counterparty: str | None = None
    iban: str | None = None
    reference: str | None = None

    partner_id: str | None = None
    partner_type: PartnerType | None = None
    partner_matched_by: MatchedBy | None = None
    partner_confidence: int | None = None
    prior_partner: PriorAssignment | None = None
    partner_suggestions: list[PartnerSuggestion] = field(default_factory=list)

    document_ids: list[str] = field(default_factory=list)
    rejected_document_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Connection:
    """Link between one document and one transaction, with provenance."""

    id: str
    document_id: str
    transaction_id: str
    owner_id: str
    method: ConnectionMethod
    signals: list[str] = field(default_factory=list)
    confidence: int | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class OwnerProfile:
    """Identifiers that belong to the document owner's own business."""

    owner_id: str
    ibans: list[str] = field(default_factory=list)
    vat_ids: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)


@dataclass
class CompanyInfo:
    """Best-effort company data from lookup or VAT registry."""

    name: str
    vat_id: str | None = None
    website: str | None = None
    country: str | None = None
    address: str | None = None
    aliases: list[str] = field(default_factory=list)


@dataclass
class DomainVerdict:
    is_owner: bool
    confidence: int
    reason: str = ""


@dataclass
class VatCheckResult:
    valid: bool
    country_code: str
    number: str
    name: str | None = None
    address: str | None = None

    @property
    def vat_id(self) -> str:
        return f"{self.country_code}{self.number}"


@dataclass
class Notification:
    kind: str
    title: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass
class StageResult:
    """Outcome of running one pipeline stage for one document."""

    document_id: str
    stage: str
    partner_id: str | None = None
    confidence: int | None = None
    partner_changed: bool = False
    connected: list[str] = field(default_factory=list)
    suggestions: int = 0
    skipped: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0
