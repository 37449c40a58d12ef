"""Configuration management using pydantic-settings."""

import tomllib
from enum import Enum
from pathlib import Path
from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORE = "~/.local/share/ledgermatch"
CONFIG_PATH = Path("~/.config/ledgermatch/config.toml").expanduser()
VIES_URL = "https://ec.europa.eu/taxation_customs/vies/rest-api"


class LLMProvider(str, Enum):
    """Available LLM providers."""

    OLLAMA = "ollama"
    CLAUDE_API = "claude-api"


class LLMConfig(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_LLM__")

    provider: LLMProvider = LLMProvider.OLLAMA
    model: str = "gemma3:4b"
    ollama_url: str = "http://localhost:11434"
    timeout: float = 5.0


class MatchingConfig(BaseSettings):
    """Thresholds of the partner and transaction matchers."""

    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_MATCHING__")

    partner_auto_threshold: int = 89
    partner_suggestions: int = 3
    transaction_auto_threshold: int = 85
    transaction_suggestion_threshold: int = 50
    transaction_suggestions: int = 5
    date_window_days: int = 30
    window_limit: int = 500
    recent_fallback: int = 200
    coverage_tolerance: float = 0.10
    domain_min_confidence: int = 70

    @model_validator(mode="after")
    def check_thresholds(self) -> Self:
        if self.transaction_suggestion_threshold > self.transaction_auto_threshold:
            raise ValueError("transaction_suggestion_threshold must not exceed transaction_auto_threshold")
        if not 0 <= self.coverage_tolerance < 1:
            raise ValueError("coverage_tolerance must be in [0, 1)")
        return self


class SweepConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_SWEEP__")

    interval: int = 300
    staleness: int = 180
    batch_size: int = 20


class WorkersConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_WORKERS__")

    max_concurrency: int = 4


class VatConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_VAT__")

    enabled: bool = True
    base_url: str = VIES_URL
    timeout: float = 5.0


class NotifyConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_NOTIFY__")

    webhook_url: str | None = None
    timeout: float = 5.0


class StoreConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_STORE__")

    path: Path = Path(DEFAULT_STORE)

    @field_validator("path", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERMATCH_", env_nested_delimiter="__")

    matching: MatchingConfig = MatchingConfig()
    sweep: SweepConfig = SweepConfig()
    workers: WorkersConfig = WorkersConfig()
    llm: LLMConfig = LLMConfig()
    vat: VatConfig = VatConfig()
    notify: NotifyConfig = NotifyConfig()
    store: StoreConfig = StoreConfig()


SECTIONS = {
    "matching": MatchingConfig,
    "sweep": SweepConfig,
    "workers": WorkersConfig,
    "llm": LLMConfig,
    "vat": VatConfig,
    "notify": NotifyConfig,
    "store": StoreConfig,
}


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        sections = {name: cls(**data.get(name, {})) for name, cls in SECTIONS.items()}
        return Settings(**sections)

    return Settings()
