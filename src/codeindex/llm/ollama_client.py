# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""LLM client Ollama implementation."""

import logging

import ollama

from codeindex.llm_client import ChatMessage, SummaryGenerationError, TokenCounter

logger = logging.getLogger(__name__)


class OllamaClient:
    """Generate chat turns using an Ollama provider endpoint."""

    def __init__(
        self,
        provider_url: str,
        temperature: float = 0.0,
        token_counter: TokenCounter | None = None,
    ) -> None:
        """Initialize client configuration.

        Args:
            provider_url: Ollama endpoint base URL.
            temperature: Sampling temperature for every call.
            token_counter: Prompt token estimator. Counts are approximate for
                non-OpenAI tokenizers.
        """
        self._provider_url = provider_url
        self._temperature = temperature
        self._token_counter = token_counter or TokenCounter()
        self._client = ollama.AsyncClient(host=provider_url)

    def count_tokens(self, text: str) -> int:
        return self._token_counter.count(text)

    async def generate(self, messages: list[ChatMessage], model: str) -> str:
        """Generate the next assistant turn with the Ollama chat API.

        Args:
            messages: Ordered conversation turns.
            model: Model identifier passed to Ollama.

        Returns:
            Generated text.

        Raises:
            SummaryGenerationError: If request fails or response has no content.
        """
        try:
            response = await self._client.chat(
                model=model,
                messages=[message.to_dict() for message in messages],
                options={"temperature": self._temperature},
                stream=False,
            )
        except (ollama.RequestError, ollama.ResponseError, OSError, ValueError) as exc:
            logger.warning(
                f"Ollama request failed (provider_url={self._provider_url} "
                f"model={model} error={exc})"
            )
            raise SummaryGenerationError(str(exc)) from exc

        content = _extract_response_content(response)
        if not content:
            logger.warning(
                f"Ollama response did not contain content "
                f"(provider_url={self._provider_url} model={model} response={response!r})"
            )
            raise SummaryGenerationError(
                "Ollama response does not contain generation content."
            )
        return content


def _extract_response_content(response: object) -> str:
    """Extract message content from an Ollama chat response.

    Args:
        response: Ollama response object, typically mapping-like.

    Returns:
        Response content string, or empty string if unavailable.
    """
    if isinstance(response, dict):
        message = response.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            return content.strip()
    message_obj = getattr(response, "message", None)
    content_obj = getattr(message_obj, "content", None)
    if isinstance(content_obj, str):
        return content_obj.strip()
    return ""
