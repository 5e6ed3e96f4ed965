# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Environment and input configuration loading."""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from codeindex.batch_summarizer import DEFAULT_BATCH_SIZE
from codeindex.llm.openai_client import OPENAI_DEFAULT_BASE_URL
from codeindex.summarizer import DEFAULT_ROUNDS
from codeindex.tiers import DEFAULT_TIERS, DEFAULT_TRUNCATE_CHARS, ModelTier

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Represent missing or invalid configuration."""


class Environment(BaseSettings):
    """Process environment, optionally read from a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CODEINDEX_",
        extra="ignore",
    )

    config: Path
    provider: Literal["openai", "ollama"] = "openai"
    provider_url: str = OPENAI_DEFAULT_BASE_URL
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "CODEINDEX_OPENAI_API_KEY"),
    )


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class StoreSettings(_CamelModel):
    directory: Path


class TierSettings(_CamelModel):
    name: str
    model: str
    max_tokens: int = Field(alias="maxTokens", gt=0)

    def to_tier(self) -> ModelTier:
        return ModelTier(name=self.name, model=self.model, max_tokens=self.max_tokens)


def _default_tiers() -> list[TierSettings]:
    return [
        TierSettings(name=tier.name, model=tier.model, max_tokens=tier.max_tokens)
        for tier in DEFAULT_TIERS
    ]


class SummarizationSettings(_CamelModel):
    rounds: int = Field(default=DEFAULT_ROUNDS, gt=0)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, alias="batchSize", gt=0)
    truncate_chars: int = Field(
        default=DEFAULT_TRUNCATE_CHARS, alias="truncateChars", gt=0
    )


class InputConfiguration(_CamelModel):
    """Validated input configuration document."""

    repositories: list[str]
    excluded_projects: list[str] = Field(default_factory=list, alias="excludedProjects")
    specs: list[str] = Field(default_factory=list)
    store: StoreSettings
    tiers: list[TierSettings] = Field(default_factory=_default_tiers, min_length=1)
    summarization: SummarizationSettings = Field(default_factory=SummarizationSettings)

    def model_tiers(self) -> list[ModelTier]:
        return [tier.to_tier() for tier in self.tiers]


def load_environment() -> Environment:
    """Read the process environment.

    Returns:
        Validated environment.

    Raises:
        ConfigurationError: If required variables are missing or invalid.
    """
    try:
        return Environment()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid environment: {exc}") from exc


def load_configuration(environment: Environment) -> InputConfiguration:
    """Load and validate the input configuration document.

    Args:
        environment: Environment naming the configuration file.

    Returns:
        Validated input configuration.

    Raises:
        ConfigurationError: If the file is missing, is not JSON or fails validation.
    """
    path = environment.config.expanduser()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid JSON: {exc}") from exc
    try:
        configuration = InputConfiguration.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc
    logger.info(
        f"Configuration loaded (path={path} repositories={len(configuration.repositories)} "
        f"store={configuration.store.directory})"
    )
    return configuration
