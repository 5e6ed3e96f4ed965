# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Content prompt assembly for summarizable files."""

import asyncio
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from codeindex.model import AstIndex
from codeindex.prompts import render_file_prompt

logger = logging.getLogger(__name__)

STYLE_EXTENSIONS: tuple[str, ...] = (".css", ".scss")


class ContextBuilder:
    """Render the main file prompt with related file context."""

    async def build(self, index: AstIndex, file_name: str) -> str:
        """Render the content prompt for one file.

        ``.ts`` files use the indexed source, the in-repository imports and the
        compiled rendering. ``.html`` files use the components importing them
        and those components' style sheets. Other files carry no context.

        Args:
            index: AST index of the repository.
            file_name: Absolute path of the main file.

        Returns:
            Rendered prompt text.
        """
        extension = os.path.splitext(file_name)[1]
        if extension == ".ts":
            return await self._build_source(index, file_name)
        file_content = await read_text(file_name)
        if extension == ".html":
            dependencies = await self._read_all(_template_dependencies(index, file_name))
            return render_file_prompt(file_name, file_content, dependencies)
        return render_file_prompt(file_name, file_content)

    async def _build_source(self, index: AstIndex, file_name: str) -> str:
        record = index.record_for(file_name)
        if record is None:
            logger.warning(f"No AST record for source file; using raw content (file_name={file_name})")
            return render_file_prompt(file_name, await read_text(file_name))
        local_imports = [
            path for path in record.imports if _is_within(path, record.repository)
        ]
        dependencies = await self._read_all(local_imports)
        return render_file_prompt(
            file_name, record.source_code, dependencies, record.compiled_code
        )

    async def _read_all(self, paths: Sequence[str]) -> str:
        contents = await asyncio.gather(*(read_text(path) for path in paths))
        return "\n".join(contents)


def _template_dependencies(index: AstIndex, file_name: str) -> list[str]:
    paths: list[str] = []
    for record in index.codebase_info:
        if file_name not in record.imports:
            continue
        paths.append(record.file_name)
        paths.extend(
            path
            for path in record.imports
            if _is_within(path, record.repository)
            and os.path.splitext(path)[1] in STYLE_EXTENSIONS
        )
    return paths


def _is_within(path: str, repository: str) -> bool:
    root = repository.rstrip(os.sep)
    return path == root or path.startswith(root + os.sep)


async def read_text(file_name: str) -> str:
    """Read a file, returning empty text when it cannot be read."""
    try:
        return await asyncio.to_thread(Path(file_name).read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"File unreadable; using empty content (file_name={file_name} error={exc})")
        return ""
