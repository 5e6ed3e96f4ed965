# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Batch summarization with durable progress."""

import asyncio
import logging
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from codeindex.context_builder import ContextBuilder
from codeindex.model import AstIndex
from codeindex.persistence import IndexStore
from codeindex.summary_schema import FileSummary

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE: int = 50
SUMMARIZABLE_EXTENSIONS: tuple[str, ...] = (".html", ".ts", ".json", ".yaml", ".yml")


class FileSummarizer(Protocol):
    async def summarize(
        self, file_name: str, content_prompt: str
    ) -> dict[str, FileSummary]:
        """Summarize one file, returning an empty mapping on failure."""


@dataclass
class BatchRunResult:
    """Outcome of one summarization run over an index."""

    index_path: Path
    total: int = 0
    summarized: int = 0
    failed: list[str] = field(default_factory=list)
    batches: int = 0


class BatchSummarizer:
    """Summarize pending files of an index in persisted batches."""

    def __init__(
        self,
        summarizer: FileSummarizer,
        context_builder: ContextBuilder,
        store: IndexStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        extensions: Sequence[str] = SUMMARIZABLE_EXTENSIONS,
    ) -> None:
        """Initialize batch controller.

        Args:
            summarizer: Engine producing one summary per file.
            context_builder: Renders the content prompt for a file.
            store: Index store used to persist progress.
            batch_size: Number of files summarized concurrently per batch.
            extensions: Extensions eligible for summarization.

        Raises:
            ValueError: If ``batch_size`` is not greater than zero.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._summarizer = summarizer
        self._context_builder = context_builder
        self._store = store
        self._batch_size = batch_size
        self._extensions = tuple(extensions)

    def pending_files(self, index: AstIndex) -> list[str]:
        """List absolute paths that still need a summary.

        Args:
            index: AST index of the repository.

        Returns:
            Eligible paths absent from ``file_summaries``, in tracked order.
        """
        root = index.repository_root
        pending: list[str] = []
        for path in index.files:
            file_name = os.path.normpath(os.path.join(root, path))
            if os.path.splitext(file_name)[1] not in self._extensions:
                continue
            if index.is_summarized(file_name):
                continue
            pending.append(file_name)
        return pending

    async def summarize_all(self, index: AstIndex, index_path: Path) -> BatchRunResult:
        """Summarize every pending file and persist after each batch.

        Args:
            index: AST index to update in place.
            index_path: Artifact path the index is saved to.

        Returns:
            Run statistics.

        Raises:
            PersistenceError: If progress cannot be saved.
        """
        pending = self.pending_files(index)
        result = BatchRunResult(index_path=index_path, total=len(pending))
        if not pending:
            self._log_progress(completed=0, total=0, failed=0, eta_seconds=0)
            return result

        started_at = time.monotonic()
        completed = 0
        for offset in range(0, len(pending), self._batch_size):
            batch = pending[offset : offset + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._summarize_file(index, file_name) for file_name in batch),
                return_exceptions=True,
            )
            summaries: dict[str, dict] = {}
            for file_name, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.warning(
                        f"Summarization raised unexpectedly (file_name={file_name} "
                        f"error={outcome!r})"
                    )
                    result.failed.append(file_name)
                    continue
                summary = outcome.get(file_name)
                if summary is None:
                    result.failed.append(file_name)
                    continue
                summaries[file_name] = summary.to_dict()

            result.summarized += index.merge_summaries(summaries)
            await asyncio.to_thread(self._store.save, index, index_path)
            result.batches += 1
            completed += len(batch)

            elapsed = time.monotonic() - started_at
            remaining = len(pending) - completed
            eta_seconds = int(round(remaining * elapsed / completed))
            self._log_progress(
                completed=completed,
                total=len(pending),
                failed=len(result.failed),
                eta_seconds=eta_seconds,
            )

        return result

    async def summarize_store(self) -> list[BatchRunResult]:
        """Summarize every index artifact in the store.

        Returns:
            One result per artifact, in artifact name order.
        """
        results: list[BatchRunResult] = []
        for path in self._store.list_indexes():
            index = await asyncio.to_thread(self._store.load, path)
            logger.info(f"Summarizing index (path={path} repository={index.repository_root})")
            results.append(await self.summarize_all(index, path))
        return results

    async def _summarize_file(
        self, index: AstIndex, file_name: str
    ) -> dict[str, FileSummary]:
        content_prompt = await self._context_builder.build(index, file_name)
        return await self._summarizer.summarize(file_name, content_prompt)

    def _log_progress(
        self, completed: int, total: int, failed: int, eta_seconds: int
    ) -> None:
        """Emit structured progress log line.

        Args:
            completed: Number of files attempted so far.
            total: Pending files at the start of the run.
            failed: Number of files without a summary.
            eta_seconds: Estimated seconds remaining.
        """
        percent = 100.0 if total == 0 else (completed / total) * 100.0
        logger.info(
            "summary_batch_progress completed=%s total=%s failed=%s percent=%.2f eta_seconds=%s",
            completed,
            total,
            failed,
            percent,
            eta_seconds,
        )
