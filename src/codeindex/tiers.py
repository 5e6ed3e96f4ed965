# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Model tier routing by prompt size."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_TRUNCATE_CHARS: int = 100_000


@dataclass(frozen=True)
class ModelTier:
    """Represent one model tier and its prompt token budget."""

    name: str
    model: str
    max_tokens: int


DEFAULT_TIERS: tuple[ModelTier, ...] = (
    ModelTier(name="standard", model="gpt-4o-mini", max_tokens=2_000),
    ModelTier(name="extended", model="gpt-4o", max_tokens=26_000),
    ModelTier(name="large", model="gpt-4.1", max_tokens=120_000),
)


class TierSelector(Protocol):
    """Define tier routing behavior."""

    @property
    def largest(self) -> ModelTier:
        """Return the tier with the biggest token budget."""

    def select(self, token_count: int) -> ModelTier:
        """Return the tier serving a prompt of ``token_count`` tokens."""


class TierTable:
    """Route prompts to the smallest tier whose budget fits."""

    def __init__(self, tiers: Sequence[ModelTier] = DEFAULT_TIERS) -> None:
        """Initialize tier table.

        Args:
            tiers: Available tiers in any order.

        Raises:
            ValueError: If no tiers are given or a budget is not positive.
        """
        if not tiers:
            raise ValueError("at least one model tier is required")
        for tier in tiers:
            if tier.max_tokens <= 0:
                raise ValueError(f"tier '{tier.name}' max_tokens must be > 0")
        self._tiers = tuple(sorted(tiers, key=lambda tier: tier.max_tokens))

    @property
    def tiers(self) -> tuple[ModelTier, ...]:
        return self._tiers

    @property
    def largest(self) -> ModelTier:
        return self._tiers[-1]

    def select(self, token_count: int) -> ModelTier:
        """Select a tier for a prompt.

        Args:
            token_count: Token count of the rendered prompt.

        Returns:
            First tier whose budget covers the count, else the largest tier.
        """
        for tier in self._tiers:
            if token_count <= tier.max_tokens:
                return tier
        return self.largest


def truncate_prompt(text: str, max_chars: int = DEFAULT_TRUNCATE_CHARS) -> str:
    """Cut a prompt to its first ``max_chars`` characters."""
    if max_chars <= 0:
        raise ValueError("max_chars must be > 0")
    return text[:max_chars]
