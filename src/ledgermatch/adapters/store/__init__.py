"""Store adapters."""

from .memory import InMemoryStore
from .yaml_store import YamlStore

__all__ = ["InMemoryStore", "YamlStore"]
