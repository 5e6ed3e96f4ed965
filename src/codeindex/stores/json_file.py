# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence JSON file implementation for AST index artifacts."""

import json
import logging
import os
from pathlib import Path

from codeindex.model import AstIndex
from codeindex.persistence import (
    INDEX_FILE_PREFIX,
    INDEX_FILE_SUFFIX,
    PersistenceError,
    index_file_name,
)

logger = logging.getLogger(__name__)


class JsonIndexStore:
    """Persist AST indexes as one JSON document per repository."""

    def __init__(self, directory: Path) -> None:
        """Initialize store backend.

        Args:
            directory: Directory holding ``ast-<repository>.json`` artifacts.
        """
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, repository: str) -> Path:
        return self._directory / index_file_name(repository)

    def exists(self, repository: str) -> bool:
        return self.path_for(repository).is_file()

    def list_indexes(self) -> list[Path]:
        if not self._directory.is_dir():
            return []
        return sorted(
            path
            for path in self._directory.iterdir()
            if path.name.startswith(INDEX_FILE_PREFIX)
            and path.name.endswith(INDEX_FILE_SUFFIX)
        )

    def load(self, path: Path) -> AstIndex:
        """Load one AST index artifact.

        Args:
            path: Artifact path.

        Returns:
            Parsed index.

        Raises:
            PersistenceError: If the file cannot be read or is not an index.
        """
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(f"AST index could not be read (path={path} error={exc})")
            raise PersistenceError(str(exc)) from exc
        if not isinstance(payload, dict):
            logger.warning(f"AST index is not a JSON object (path={path})")
            raise PersistenceError(f"AST index is not a JSON object: {path}")
        return AstIndex.from_dict(payload)

    def save(self, index: AstIndex, path: Path) -> None:
        """Rewrite one AST index artifact atomically.

        The document is written to a sibling temporary file and moved into
        place, so readers never observe a partially written index.

        Args:
            index: Index to persist.
            path: Artifact path.

        Raises:
            PersistenceError: If the directory or file cannot be written.
        """
        temporary = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temporary.write_text(
                json.dumps(index.to_dict(), indent=2), encoding="utf-8"
            )
            os.replace(temporary, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(f"AST index could not be written (path={path} error={exc})")
            raise PersistenceError(str(exc)) from exc
        logger.debug(
            f"AST index persisted (path={path} summaries={len(index.file_summaries)})"
        )
