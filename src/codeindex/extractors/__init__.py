# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Extractor package for the codebase indexer."""

from codeindex.extractors.typescript import TypeScriptExtractor

__all__ = ["TypeScriptExtractor"]
