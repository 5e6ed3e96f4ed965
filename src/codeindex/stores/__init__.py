# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Index store backends for the codebase indexer."""

from codeindex.stores.json_file import JsonIndexStore

__all__ = ["JsonIndexStore"]
