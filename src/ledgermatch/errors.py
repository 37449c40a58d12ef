"""Exception types."""


class LedgermatchError(Exception):
    """Base class for all engine errors."""


class NotFoundError(LedgermatchError):
    """A referenced document, partner or transaction does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ExtractionError(LedgermatchError):
    """The extraction collaborator could not produce structured fields."""


class CollaboratorError(LedgermatchError):
    """An external collaborator (lookup, registry, reasoning) failed."""
