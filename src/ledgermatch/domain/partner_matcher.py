"""Partner matching stage."""

import logging
from dataclasses import replace

from ..config import MatchingConfig
from ..errors import NotFoundError
from ..ports.reasoning import ReasoningPort
from ..ports.store import StorePort
from ..ports.vat_registry import VatRegistryPort
from .learning import DomainAction, decide_email_domain, should_learn_alias
from .models import (
    CompanyInfo,
    Document,
    ExtractedFields,
    MatchedBy,
    Partner,
    PartnerSuggestion,
    PartnerType,
    StageResult,
    new_id,
    utcnow,
)
from .normalize import (
    domains_match,
    extract_root_domain,
    has_legal_suffix,
    normalize_company_name,
    normalize_email,
    normalize_iban,
    normalize_vat_id,
    parse_vat_id,
)
from .partner_rules import PartnerMatch, match_all_partners
from .propagation import sync_connected_transactions

logger = logging.getLogger(__name__)

STAGE = "partner"

VIES_CONFIDENCE = 98
VAT_CONFIDENCE = 95
LOOKUP_CONFIDENCE = 89
MINIMAL_CONFIDENCE = 85


class PartnerMatchingService:
    """Decides which partner a document belongs to.

    Run order: manual guard, self-match suppression, existing VAT id,
    VAT registry, partner directory, company lookup, suggestions only.
    """

    def __init__(
        self,
        store: StorePort,
        reasoning: ReasoningPort | None = None,
        vat_registry: VatRegistryPort | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        self.store = store
        self.reasoning = reasoning
        self.vat_registry = vat_registry
        self.config = config or MatchingConfig()

    def match(self, document_id: str) -> StageResult:
        """Run the partner stage for one document.

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
            logger.exception(f"Partner matching failed for {document_id}")
            result.errors.append(str(e))
            self._complete(document_id, partner_suggestions=[], last_error=str(e))

        return result

    def _complete(self, document_id: str, **changes) -> Document:
        return self.store.update_document(
            document_id,
            partner_match_complete=True,
            partner_matched_at=utcnow(),
            **changes,
        )

    def _match(self, document: Document, result: StageResult) -> None:
        if document.not_invoice or document.extraction_error:
            result.skipped = "not an invoice" if document.not_invoice else "extraction failed"
            self._complete(document.id, partner_suggestions=[], last_error=None)
            return

        fields = self._suppress_self(document.owner_id, document.fields)

        # 1. Manual assignment stays; only learn from it
        if document.has_manual_partner:
            logger.info(f"Document {document.id} has manual partner {document.partner_id}")
            partner = self.store.get_partner(document.partner_id)
            if partner is not None and partner.partner_type == PartnerType.USER:
                self._learn(partner, fields)
            result.partner_id = document.partner_id
            result.skipped = "manual"
            self._complete(document.id, last_error=None)
            return

        # 2. Nothing to match on
        if not fields.has_partner_signals():
            logger.info(f"Document {document.id} has no partner signals")
            result.skipped = "no signals"
            self._complete(document.id, partner_suggestions=[], last_error=None)
            return

        user_partners = self.store.user_partners(document.owner_id)
        shared_partners = self.store.shared_partners()
        matches = match_all_partners(fields, user_partners, shared_partners)
        suggestions = self._suggestions(matches)
        result.suggestions = len(suggestions)

        # 3. An IBAN match beats everything below
        if matches and matches[0].source == "iban":
            self._assign_match(document, fields, matches[0], suggestions, result)
            return

        # 4. Known VAT id, no external call
        if fields.vat_id:
            partner = self._find_by_vat(document.owner_id, fields.vat_id, user_partners, shared_partners)
            if partner is not None:
                self._assign(document, fields, partner, VAT_CONFIDENCE, "vat_id", suggestions, result)
                return

        # 5. VAT registry
        if fields.vat_id and self.vat_registry is not None:
            partner = self._create_from_registry(document.owner_id, fields, user_partners)
            if partner is not None:
                self._assign(document, fields, partner, VIES_CONFIDENCE, "vies", suggestions, result)
                return

        # 6. Directory
        if matches and matches[0].confidence >= self.config.partner_auto_threshold:
            self._assign_match(document, fields, matches[0], suggestions, result)
            return

        # 7. Named company we have never seen
        if fields.partner_name and has_legal_suffix(fields.partner_name):
            partner, confidence = self._create_from_name(document.owner_id, fields.partner_name, user_partners)
            self._assign(document, fields, partner, confidence, "lookup", suggestions, result)
            return

        # 8. Suggestions only
        logger.info(f"Document {document.id}: {len(suggestions)} partner suggestions, no assignment")
        self._complete(document.id, partner_suggestions=suggestions, last_error=None)

    def _suggestions(self, matches: list[PartnerMatch]) -> list[PartnerSuggestion]:
        return [
            PartnerSuggestion(
                partner_id=m.partner_id,
                partner_type=m.partner_type,
                confidence=m.confidence,
                source=m.source,
            )
            for m in matches[: self.config.partner_suggestions]
        ]

    def _suppress_self(self, owner_id: str, fields: ExtractedFields) -> ExtractedFields:
        """Drop identifiers that belong to the owner's own business."""
        profile = self.store.get_owner_profile(owner_id)
        if profile is None:
            return fields

        changes = {}
        if fields.iban and normalize_iban(fields.iban) in {normalize_iban(i) for i in profile.ibans}:
            changes["iban"] = None
        if fields.vat_id and normalize_vat_id(fields.vat_id) in {normalize_vat_id(v) for v in profile.vat_ids}:
            changes["vat_id"] = None
        if fields.sender_email and normalize_email(fields.sender_email) in {
            normalize_email(e) for e in profile.emails
        }:
            changes["sender_email"] = None
            changes["sender_domain"] = None

        if changes:
            logger.debug(f"Suppressed owner identifiers: {', '.join(changes)}")
            return replace(fields, **changes)
        return fields

    def _find_by_vat(
        self,
        owner_id: str,
        vat_id: str,
        user_partners: list[Partner],
        shared_partners: list[Partner],
    ) -> Partner | None:
        wanted = normalize_vat_id(vat_id)
        for partner in user_partners:
            if partner.active and partner.vat_id and normalize_vat_id(partner.vat_id) == wanted:
                return partner
        for partner in shared_partners:
            if partner.active and partner.vat_id and normalize_vat_id(partner.vat_id) == wanted:
                return self.localize(owner_id, partner)
        return None

    def _create_from_registry(
        self,
        owner_id: str,
        fields: ExtractedFields,
        user_partners: list[Partner],
    ) -> Partner | None:
        parsed = parse_vat_id(fields.vat_id)
        if parsed is None:
            return None
        try:
            check = self.vat_registry.check(*parsed)
        except Exception as e:
            logger.warning(f"VAT registry check failed for {fields.vat_id}: {e}")
            return None
        if not check.valid or not check.name:
            logger.info(f"VAT id {fields.vat_id} not confirmed by registry")
            return None

        info = CompanyInfo(
            name=check.name,
            vat_id=check.vat_id,
            country=check.country_code,
            address=check.address,
        )
        return self._create_partner(
            owner_id, info, fields.partner_name, user_partners, created_by="vies", vat_verified=True
        )

    def _create_from_name(
        self,
        owner_id: str,
        name: str,
        user_partners: list[Partner],
    ) -> tuple[Partner, int]:
        info = None
        if self.reasoning is not None:
            try:
                info = self.reasoning.lookup_company(name)
            except Exception as e:
                logger.warning(f"Company lookup failed for {name}: {e}")

        if info is not None:
            return self._create_partner(owner_id, info, name, user_partners, created_by="lookup"), LOOKUP_CONFIDENCE

        logger.info(f"Creating minimal partner from extracted name: {name}")
        info = CompanyInfo(name=name.strip())
        return self._create_partner(owner_id, info, name, user_partners, created_by="auto"), MINIMAL_CONFIDENCE

    def _dedup_candidates(self, info: CompanyInfo, user_partners: list[Partner]) -> list[Partner]:
        wanted = normalize_company_name(info.name)
        candidates = []
        for partner in user_partners:
            if not partner.active:
                continue
            names = [normalize_company_name(n) for n in [partner.name, *partner.plain_aliases]]
            name_overlap = wanted and any(n and (n in wanted or wanted in n) for n in names)
            same_vat = bool(
                info.vat_id and partner.vat_id and normalize_vat_id(info.vat_id) == normalize_vat_id(partner.vat_id)
            )
            same_site = bool(info.website and partner.website and domains_match(info.website, partner.website))
            if name_overlap or same_vat or same_site:
                candidates.append(partner)
        return candidates

    def _find_duplicate(self, info: CompanyInfo, user_partners: list[Partner]) -> Partner | None:
        candidates = self._dedup_candidates(info, user_partners)
        if not candidates:
            return None

        if info.vat_id:
            for partner in candidates:
                if partner.vat_id and normalize_vat_id(partner.vat_id) == normalize_vat_id(info.vat_id):
                    return partner

        wanted = normalize_company_name(info.name)
        for partner in candidates:
            if normalize_company_name(partner.name) == wanted:
                return partner

        if self.reasoning is None:
            return None
        try:
            duplicate_id = self.reasoning.find_duplicate(info, candidates)
        except Exception as e:
            logger.warning(f"Duplicate check failed for {info.name}: {e}")
            return None
        return next((p for p in candidates if p.id == duplicate_id), None)

    def _create_partner(
        self,
        owner_id: str,
        info: CompanyInfo,
        extracted_name: str | None,
        user_partners: list[Partner],
        created_by: str,
        vat_verified: bool = False,
    ) -> Partner:
        """Create a user partner unless an equivalent one exists."""
        duplicate = self._find_duplicate(info, user_partners)
        if duplicate is not None:
            logger.info(f"Reusing partner {duplicate.id} ({duplicate.name}) for {info.name}")
            if should_learn_alias(extracted_name, duplicate):
                self.store.add_partner_aliases(duplicate.id, [extracted_name.strip()])
            return self.store.get_partner(duplicate.id)

        aliases = [a for a in info.aliases if a.strip().lower() != info.name.strip().lower()]
        if extracted_name and extracted_name.strip().lower() != info.name.strip().lower():
            aliases.insert(0, extracted_name.strip())

        partner = Partner(
            id=new_id(),
            name=info.name,
            owner_id=owner_id,
            aliases=list(dict.fromkeys(aliases)),
            vat_id=normalize_vat_id(info.vat_id) if info.vat_id else None,
            website=extract_root_domain(info.website) or None,
            country=info.country,
            address=info.address,
            vat_verified=vat_verified,
            created_by=created_by,
        )
        self.store.save_partner(partner)
        user_partners.append(partner)
        logger.info(f"Created partner {partner.id} ({partner.name}) via {created_by}")
        return partner

    def localize(self, owner_id: str, shared: Partner) -> Partner:
        """Return the owner's copy of a shared partner, creating it once."""
        for partner in self.store.user_partners(owner_id):
            if partner.shared_partner_id == shared.id and partner.active:
                return partner

        partner = Partner(
            id=new_id(),
            name=shared.name,
            owner_id=owner_id,
            aliases=list(shared.aliases),
            ibans=list(shared.ibans),
            vat_id=shared.vat_id,
            website=shared.website,
            email_domains=list(shared.email_domains),
            shared_partner_id=shared.id,
            country=shared.country,
            address=shared.address,
            vat_verified=shared.vat_verified,
            created_by="localized",
        )
        self.store.save_partner(partner)
        logger.info(f"Localized shared partner {shared.id} as {partner.id} for {owner_id}")
        return partner

    def _partner_for(self, owner_id: str, match: PartnerMatch) -> Partner:
        partner = self.store.get_partner(match.partner_id)
        if partner is None:
            raise NotFoundError("partner", match.partner_id)
        if match.partner_type == PartnerType.SHARED:
            return self.localize(owner_id, partner)
        return partner

    def _assign_match(
        self,
        document: Document,
        fields: ExtractedFields,
        match: PartnerMatch,
        suggestions: list[PartnerSuggestion],
        result: StageResult,
    ) -> None:
        partner = self._partner_for(document.owner_id, match)
        self._assign(document, fields, partner, match.confidence, match.source, suggestions, result)

    def _assign(
        self,
        document: Document,
        fields: ExtractedFields,
        partner: Partner,
        confidence: int,
        source: str,
        suggestions: list[PartnerSuggestion],
        result: StageResult,
    ) -> None:
        matched_by = MatchedBy.AUTO
        if document.partner_id == partner.id:
            # A standing assignment keeps its confidence and method
            if document.partner_confidence is not None:
                confidence = document.partner_confidence
            matched_by = document.partner_matched_by or MatchedBy.AUTO
        logger.info(f"Document {document.id} -> partner {partner.id} ({partner.name}, {source} {confidence})")
        updated = self._complete(
            document.id,
            partner_id=partner.id,
            partner_type=partner.partner_type,
            partner_matched_by=matched_by,
            partner_confidence=confidence,
            partner_suggestions=suggestions,
            last_error=None,
        )
        result.partner_id = partner.id
        result.confidence = confidence
        result.partner_changed = document.partner_id != partner.id

        if partner.partner_type == PartnerType.USER:
            self._learn(partner, fields)
        sync_connected_transactions(self.store, updated)

    def _learn(self, partner: Partner, fields: ExtractedFields) -> None:
        """Learn alias and email domain from a document assigned to ``partner``."""
        if should_learn_alias(fields.partner_name, partner):
            logger.info(f"Learning alias for {partner.id}: {fields.partner_name}")
            self.store.add_partner_aliases(partner.id, [fields.partner_name.strip()])

        decision = decide_email_domain(fields, partner)
        if decision.action == DomainAction.VERIFY:
            if self.reasoning is None:
                return
            try:
                verdict = self.reasoning.validate_domain_ownership(decision.domain, partner.name)
            except Exception as e:
                logger.warning(f"Domain ownership check failed for {decision.domain}: {e}")
                return
            if not verdict.is_owner or verdict.confidence < self.config.domain_min_confidence:
                logger.debug(f"Not learning {decision.domain} for {partner.id}: {verdict.reason}")
                return
        elif decision.action == DomainAction.SKIP:
            return

        logger.info(f"Learning email domain for {partner.id}: {decision.domain}")
        self.store.add_partner_email_domains(partner.id, [decision.domain])

    def learn_from_document(self, document_id: str) -> None:
        """Learn from an assignment made outside the partner stage."""
        document = self.store.get_document(document_id)
        if document is None or not document.partner_id:
            return
        partner = self.store.get_partner(document.partner_id)
        if partner is None or partner.partner_type != PartnerType.USER:
            return
        self._learn(partner, self._suppress_self(document.owner_id, document.fields))

    def rematch_directory(self, document_id: str) -> bool:
        """Re-evaluate an auto or unassigned document against the directory only.

        Returns True when the document's partner changed.
        """
        document = self.store.get_document(document_id)
        if document is None or document.deleted or document.has_manual_partner:
            return False
        if document.partner_id and document.partner_matched_by != MatchedBy.AUTO:
            return False

        fields = self._suppress_self(document.owner_id, document.fields)
        matches = match_all_partners(
            fields, self.store.user_partners(document.owner_id), self.store.shared_partners()
        )
        suggestions = self._suggestions(matches)

        if matches and matches[0].confidence >= self.config.partner_auto_threshold:
            top = matches[0]
            partner = self._partner_for(document.owner_id, top)
            if partner.id != document.partner_id:
                result = StageResult(document_id=document_id, stage=STAGE)
                self._assign(document, fields, partner, top.confidence, top.source, suggestions, result)
                return True
            self.store.update_document(document_id, partner_suggestions=suggestions)
            return False

        if document.partner_id:
            logger.info(f"Clearing partner {document.partner_id} from {document_id}: no confident match")
            self.store.update_document(
                document_id,
                partner_id=None,
                partner_type=None,
                partner_matched_by=None,
                partner_confidence=None,
                partner_suggestions=suggestions,
            )
            return True

        self.store.update_document(document_id, partner_suggestions=suggestions)
        return False
