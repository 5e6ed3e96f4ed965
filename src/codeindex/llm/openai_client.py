# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""LLM client OpenAI implementation."""

import logging
from urllib.parse import urlparse

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)

from codeindex.llm_client import (
    ChatMessage,
    SummaryGenerationError,
    TokenCounter,
    TokenUsage,
)

logger = logging.getLogger(__name__)

OPENAI_DEFAULT_BASE_URL: str = "https://api.openai.com/v1"
DEFAULT_MAX_RETRIES: int = 5
DEFAULT_TIMEOUT_SECONDS: float = 600.0


class OpenAIClient:
    """Generate chat completions using OpenAI's Chat Completions API."""

    def __init__(
        self,
        provider_url: str = OPENAI_DEFAULT_BASE_URL,
        api_key: str | None = None,
        temperature: float = 0.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        token_counter: TokenCounter | None = None,
        usage: TokenUsage | None = None,
    ) -> None:
        """Initialize client configuration.

        Args:
            provider_url: OpenAI-compatible endpoint base URL.
            api_key: API key; the SDK reads ``OPENAI_API_KEY`` when omitted.
            temperature: Sampling temperature for every call.
            max_retries: SDK-level retry budget for transient failures.
            token_counter: Prompt token estimator.
            usage: Accumulator for provider-reported token usage.
        """
        self._provider_url = provider_url
        self._api_key = api_key
        self._temperature = temperature
        self._max_retries = max_retries
        self._token_counter = token_counter or TokenCounter()
        self.usage = usage or TokenUsage()
        self._client: AsyncOpenAI | None = None

    def count_tokens(self, text: str) -> int:
        return self._token_counter.count(text)

    async def generate(self, messages: list[ChatMessage], model: str) -> str:
        """Generate the next assistant turn with the Chat Completions API.

        Args:
            messages: Ordered conversation turns.
            model: Model identifier.

        Returns:
            Generated text.

        Raises:
            SummaryGenerationError: If request fails or response has no content.
        """
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[message.to_dict() for message in messages],
                temperature=self._temperature,
            )
        except (
            APIConnectionError,
            APIError,
            APITimeoutError,
            AuthenticationError,
            BadRequestError,
            InternalServerError,
            NotFoundError,
            PermissionDeniedError,
            RateLimitError,
            AttributeError,
            OSError,
            ValueError,
        ) as exc:
            logger.warning(
                f"OpenAI request failed (provider_url={self._provider_url} "
                f"model={model} error={exc})"
            )
            raise SummaryGenerationError(str(exc)) from exc

        self._record_usage(response)
        content = _extract_response_content(response)
        if not content:
            logger.warning(
                f"OpenAI response did not contain content "
                f"(provider_url={self._provider_url} model={model} response={response!r})"
            )
            raise SummaryGenerationError(
                "OpenAI response does not contain generation content."
            )
        return content

    def _record_usage(self, response: object) -> None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return
        self.usage.add(
            prompt_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
            completion_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
            total_tokens=int(getattr(usage, "total_tokens", 0) or 0),
        )

    def _get_client(self) -> AsyncOpenAI:
        """Get or initialize OpenAI SDK client.

        Returns:
            Initialized OpenAI SDK client.

        Raises:
            SummaryGenerationError: If client initialization fails.
        """
        if self._client is not None:
            return self._client
        try:
            self._client = AsyncOpenAI(
                base_url=_normalize_provider_url(self._provider_url),
                api_key=self._api_key,
                max_retries=self._max_retries,
                timeout=DEFAULT_TIMEOUT_SECONDS,
            )
        except (OpenAIError, OSError, ValueError) as exc:
            logger.warning(
                f"OpenAI client initialization failed (provider_url={self._provider_url} "
                f"error={exc})"
            )
            raise SummaryGenerationError(str(exc)) from exc
        return self._client


def _normalize_provider_url(provider_url: str) -> str:
    """Normalize OpenAI provider URL to a valid base URL.

    Args:
        provider_url: User-provided provider URL or alias.

    Returns:
        Normalized base URL suitable for OpenAI Python client.

    Raises:
        ValueError: If provider URL is invalid.
    """
    normalized_raw = provider_url.strip()
    if not normalized_raw:
        raise ValueError("Invalid OpenAI provider URL: value is empty.")

    lowered_raw = normalized_raw.lower().rstrip("/")
    if lowered_raw in {"openai", "openai.com", "www.openai.com", "api.openai.com"}:
        return OPENAI_DEFAULT_BASE_URL

    candidate = normalized_raw
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(
            f"Invalid OpenAI provider URL: expected host URL, got '{provider_url}'."
        )

    if parsed.netloc.lower() in {"openai.com", "www.openai.com", "api.openai.com"}:
        return OPENAI_DEFAULT_BASE_URL

    return candidate.rstrip("/")


def _extract_response_content(response: object) -> str:
    """Extract the first choice's message content from a completion.

    Args:
        response: Chat completion object or mapping.

    Returns:
        Response content string, or empty string if unavailable.
    """
    if isinstance(response, dict):
        choices = response.get("choices") or []
        message = choices[0].get("message", {}) if choices else {}
        content = message.get("content")
        return content.strip() if isinstance(content, str) else ""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    content = getattr(getattr(choices[0], "message", None), "content", None)
    if isinstance(content, str):
        return content.strip()
    return ""
