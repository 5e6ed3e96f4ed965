# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""LLM client abstractions."""

import logging
import threading
from dataclasses import dataclass
from typing import Literal, Protocol

import tiktoken

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]

DEFAULT_ENCODING: str = "cl100k_base"


class SummaryGenerationError(RuntimeError):
    """Represent a model service failure while generating a summary."""


@dataclass(frozen=True)
class ChatMessage:
    """Represent one role-tagged conversation turn."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class LLMClient(Protocol):
    """Define chat generation behavior for a provider client."""

    def count_tokens(self, text: str) -> int:
        """Estimate the token count of a rendered prompt."""

    async def generate(self, messages: list[ChatMessage], model: str) -> str:
        """Generate the next assistant turn.

        Args:
            messages: Ordered conversation turns.
            model: Provider model identifier.

        Returns:
            Generated text.

        Raises:
            SummaryGenerationError: If generation fails or response is malformed.
        """


class TokenCounter:
    """Count tokens with a tiktoken encoding."""

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        self._encoding = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        return len(self._encoding.encode(text, disallowed_special=()))


@dataclass
class TokenUsage:
    """Accumulate token usage reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    calls: int = 0

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def add(self, prompt_tokens: int, completion_tokens: int, total_tokens: int) -> None:
        with self._lock:
            self.prompt_tokens += prompt_tokens
            self.completion_tokens += completion_tokens
            self.total_tokens += total_tokens
            self.calls += 1

    def log_totals(self) -> None:
        logger.info(
            "llm_token_usage calls=%s prompt_tokens=%s completion_tokens=%s total_tokens=%s",
            self.calls,
            self.prompt_tokens,
            self.completion_tokens,
            self.total_tokens,
        )
