# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""LLM client implementations for the verified summarizer."""

from codeindex.llm.ollama_client import OllamaClient
from codeindex.llm.openai_client import OPENAI_DEFAULT_BASE_URL, OpenAIClient

__all__ = ["OllamaClient", "OpenAIClient", "OPENAI_DEFAULT_BASE_URL"]
