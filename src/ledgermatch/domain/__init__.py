"""Domain layer - core business logic."""

from .models import (
    Connection,
    Document,
    ExtractedFields,
    MatchedBy,
    OwnerProfile,
    Partner,
    PartnerType,
    StageResult,
    Transaction,
)

__all__ = [
    "Connection",
    "Document",
    "ExtractedFields",
    "MatchedBy",
    "OwnerProfile",
    "Partner",
    "PartnerType",
    "StageResult",
    "Transaction",
]
