"""What a partner learns from a document assigned to it."""

from dataclasses import dataclass
from enum import Enum

from .models import ExtractedFields, Partner
from .normalize import domains_match, extract_root_domain

# Payment processors send invoices on behalf of many merchants
BILLING_PROVIDER_DOMAINS = frozenset(
    {
        "stripe.com",
        "paypal.com",
        "square.com",
        "squareup.com",
        "gocardless.com",
        "braintree.com",
        "braintreegateway.com",
        "adyen.com",
        "mollie.com",
        "klarna.com",
        "paddle.com",
        "chargebee.com",
        "fastspring.com",
        "recurly.com",
    }
)


class DomainAction(str, Enum):
    SKIP = "skip"
    LEARN = "learn"
    VERIFY = "verify"


@dataclass(frozen=True)
class DomainLearningDecision:
    action: DomainAction
    domain: str | None = None
    reason: str = ""


def should_learn_alias(name: str | None, partner: Partner) -> bool:
    """A new alias is neither the partner's name nor a known alias."""
    if not name or not name.strip():
        return False
    candidate = name.strip().lower()
    if candidate == partner.name.strip().lower():
        return False
    return candidate not in {a.strip().lower() for a in partner.aliases}


def is_billing_provider(domain: str) -> bool:
    return any(domains_match(domain, provider) for provider in BILLING_PROVIDER_DOMAINS)


def decide_email_domain(fields: ExtractedFields, partner: Partner) -> DomainLearningDecision:
    """Pick the domain to learn and whether it needs an ownership check.

    The website printed on the invoice beats the sender domain, which is
    often a forwarding or mailing service.
    """
    domain = extract_root_domain(fields.website) or extract_root_domain(fields.sender_domain)
    if not domain:
        return DomainLearningDecision(DomainAction.SKIP, reason="no domain")
    if any(domains_match(domain, d) for d in partner.email_domains):
        return DomainLearningDecision(DomainAction.SKIP, domain, "already learned")
    if is_billing_provider(domain):
        return DomainLearningDecision(DomainAction.SKIP, domain, "billing provider")
    if partner.website and domains_match(domain, partner.website):
        return DomainLearningDecision(DomainAction.LEARN, domain, "matches partner website")
    return DomainLearningDecision(DomainAction.VERIFY, domain, "ownership unknown")
