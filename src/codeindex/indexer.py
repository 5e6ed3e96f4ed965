# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Codebase indexing into AST index artifacts."""

import asyncio
import logging
import time
from collections.abc import Sequence
from pathlib import Path

from codeindex.extractor import Extractor
from codeindex.model import AstIndex, SourceRecord
from codeindex.persistence import IndexStore
from codeindex.repository import list_tracked_files
from codeindex.resolver import DEFAULT_SOURCE_EXTENSION, ModuleResolver, load_tsconfig

logger = logging.getLogger(__name__)


class CodebaseIndexer:
    """Build AST indexes from version-controlled repositories."""

    def __init__(
        self,
        extractor: Extractor,
        excluded_projects: Sequence[str] = (),
        source_extension: str = DEFAULT_SOURCE_EXTENSION,
    ) -> None:
        """Initialize indexing service.

        Args:
            extractor: Structural extractor for source files.
            excluded_projects: Path substrings excluded from indexing.
            source_extension: Extension of structurally parsed files.
        """
        self._extractor = extractor
        self._excluded_projects = tuple(excluded_projects)
        self._source_extension = source_extension

    async def index(self, repo_root: Path) -> AstIndex:
        """Index one repository.

        Args:
            repo_root: Repository working directory.

        Returns:
            AST index with one record per structurally parsed file.

        Raises:
            RepositoryError: If tracked files cannot be listed.
        """
        repo_root = repo_root.expanduser().resolve()
        started_at = time.monotonic()
        files = await asyncio.to_thread(
            list_tracked_files, repo_root, self._excluded_projects
        )
        resolver = ModuleResolver.from_tsconfig(
            await asyncio.to_thread(load_tsconfig, repo_root),
            source_extension=self._source_extension,
        )
        source_files = [
            repo_root / path for path in files if path.endswith(self._source_extension)
        ]
        records = await asyncio.gather(
            *(
                asyncio.to_thread(self._index_file, repo_root, file_path, resolver)
                for file_path in source_files
            )
        )
        logger.info(
            f"AST generated (repository={repo_root} files={len(files)} "
            f"records={len(records)} elapsed_seconds={time.monotonic() - started_at:.2f})"
        )
        return AstIndex(
            repository=str(repo_root),
            files=files,
            codebase_info=list(records),
        )

    async def index_all(
        self, repositories: Sequence[str], store: IndexStore, reindex: bool = False
    ) -> list[Path]:
        """Index every repository into its own artifact.

        Args:
            repositories: Repository paths.
            store: Artifact store.
            reindex: Rebuild artifacts that already exist.

        Returns:
            Paths of the artifacts written in this call.
        """
        written: list[Path] = []
        for repository in repositories:
            repository = repository.strip()
            path = store.path_for(repository)
            if store.exists(repository) and not reindex:
                logger.info(
                    f"AST index already present; skipping (repository={repository} path={path})"
                )
                continue
            index = await self.index(Path(repository))
            await asyncio.to_thread(store.save, index, path)
            written.append(path)
        return written

    def _index_file(
        self, repo_root: Path, file_path: Path, resolver: ModuleResolver
    ) -> SourceRecord:
        file_name = str(file_path)
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                f"Source file unreadable; recording empty structure (file_path={file_name} error={exc})"
            )
            return SourceRecord(repository=str(repo_root), file_name=file_name)

        try:
            result = self._extractor.extract(file_name, source)
        except Exception as exc:
            logger.warning(
                f"Extraction failed; recording source only (file_path={file_name} stage=extract error={exc})"
            )
            return SourceRecord(
                repository=str(repo_root), file_name=file_name, source_code=source
            )
        imports = [
            resolver.resolve(specifier, file_name)
            for specifier in result.import_specifiers
        ]
        imports.extend(
            resolver.resolve_reference(reference, file_name)
            for reference in result.decorator_references
        )
        if result.errors:
            logger.warning(
                f"File indexed with partial structure (file_path={file_name} "
                f"failed_stages={','.join(error.stage for error in result.errors)})"
            )
        return SourceRecord(
            repository=str(repo_root),
            file_name=file_name,
            imports=tuple(imports),
            functions=result.functions,
            classes=result.classes,
            interfaces=result.interfaces,
            source_code=source,
            compiled_code=result.compiled_code,
        )
