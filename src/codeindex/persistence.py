# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence contracts."""

import logging
from pathlib import Path
from typing import Protocol

from codeindex.model import AstIndex

logger = logging.getLogger(__name__)

INDEX_FILE_PREFIX: str = "ast-"
INDEX_FILE_SUFFIX: str = ".json"


class PersistenceError(RuntimeError):
    """Represent a fatal persistence operation failure."""


def index_file_name(repository: str) -> str:
    """Return the deterministic artifact name for a repository path."""
    return f"{INDEX_FILE_PREFIX}{Path(repository.strip().rstrip('/')).name}{INDEX_FILE_SUFFIX}"


class IndexStore(Protocol):
    """Define the contract for reading and rewriting AST index artifacts."""

    def path_for(self, repository: str) -> Path:
        """Return the artifact path for a repository."""

    def exists(self, repository: str) -> bool:
        """Return whether an artifact for the repository is stored."""

    def list_indexes(self) -> list[Path]:
        """Return all stored artifact paths."""

    def load(self, path: Path) -> AstIndex:
        """Load one artifact."""

    def save(self, index: AstIndex, path: Path) -> None:
        """Rewrite one artifact as a whole document."""
