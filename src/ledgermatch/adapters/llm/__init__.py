"""LLM adapters."""

from ...config import LLMConfig, LLMProvider
from .base import LLMAdapter
from .claude_api import ClaudeAPIAdapter
from .ollama import OllamaAdapter

__all__ = ["ClaudeAPIAdapter", "LLMAdapter", "OllamaAdapter", "create_llm_adapter"]


def create_llm_adapter(config: LLMConfig) -> LLMAdapter:
    """Create LLM adapter based on configuration."""
    if config.provider == LLMProvider.OLLAMA:
        return OllamaAdapter(model=config.model, base_url=config.ollama_url, timeout=config.timeout)
    elif config.provider == LLMProvider.CLAUDE_API:
        return ClaudeAPIAdapter(model=config.model, timeout=config.timeout)
    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")
