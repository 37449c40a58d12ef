"""LLM adapter using Claude API."""

import logging

from ...errors import CollaboratorError
from .base import LLMAdapter

logger = logging.getLogger(__name__)


class ClaudeAPIAdapter(LLMAdapter):
    """Extraction and reasoning using Claude API (pay-as-you-go)."""

    def __init__(self, model: str = "claude-sonnet-4-20250514", timeout: float = 5.0) -> None:
        import anthropic

        self._anthropic = anthropic
        self.client = anthropic.Anthropic(timeout=timeout)
        self.model = model

    def _complete(self, system: str, user: str) -> str:
        logger.debug(f"Querying Claude API ({self.model})")
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=1024,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except self._anthropic.APIError as e:
            raise CollaboratorError(f"Claude API request failed: {e}") from e

        # ty: ignore[possibly-missing-attribute]
        return response.content[0].text
