# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line interface for codebase indexing and summarization."""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from codeindex.batch_summarizer import BatchRunResult, BatchSummarizer
from codeindex.config import (
    ConfigurationError,
    Environment,
    InputConfiguration,
    load_configuration,
    load_environment,
)
from codeindex.context_builder import ContextBuilder
from codeindex.extractors import TypeScriptExtractor
from codeindex.indexer import CodebaseIndexer
from codeindex.llm import OllamaClient, OpenAIClient
from codeindex.llm_client import LLMClient, TokenUsage
from codeindex.persistence import PersistenceError
from codeindex.repository import RepositoryError
from codeindex.resolver import ModuleResolver, load_tsconfig
from codeindex.stores import JsonIndexStore
from codeindex.summarizer import VerifiedSummarizer
from codeindex.tiers import TierTable

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIRECTORY = Path("logs")

TABLE_COLUMN_RATIOS: dict[str, int] = {
    "file_name": 3,
    "tag": 1,
    "file_description": 6,
}


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def add_file_logging(directory: Path = DEFAULT_LOG_DIRECTORY) -> Path:
    """Mirror log records to a timestamped file.

    Args:
        directory: Directory receiving the log file.

    Returns:
        Path of the log file.
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"codeindex-{time.strftime('%Y%m%d-%H%M%S')}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(handler)
    return path


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="codeindex")
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write logs to a timestamped file under ./logs.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index")
    index_parser.add_argument(
        "--reindex",
        action="store_true",
        help="Rebuild indexes that already exist in the store.",
    )

    summarize_parser = subparsers.add_parser("summarize")
    summarize_parser.add_argument(
        "--repository",
        required=False,
        help="Summarize only this configured repository.",
    )

    show_parser = subparsers.add_parser("show")
    show_parser.add_argument(
        "--repository", required=True, help="Repository whose summaries are shown."
    )
    show_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format.",
    )

    resolve_parser = subparsers.add_parser("resolve")
    resolve_parser.add_argument(
        "--repository", required=True, help="Repository root holding tsconfig.json."
    )
    resolve_parser.add_argument(
        "--from-file", required=True, help="File containing the import."
    )
    resolve_parser.add_argument("specifier", help="Module specifier to resolve.")
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if args.log_file:
        log_path = add_file_logging()
        logger.info(f"Writing log file (path={log_path})")
    if args.command == "resolve":
        return _run_resolve(args=args, stdout=stdout, stderr=stderr)
    if args.command in {"index", "summarize", "show"}:
        try:
            environment = load_environment()
            configuration = load_configuration(environment)
        except ConfigurationError as exc:
            logger.warning(f"Configuration failed (error={exc})")
            stderr.write(f"Configuration error: {exc}\n")
            return 2
        if args.command == "index":
            return _run_index(args, configuration, stdout=stdout, stderr=stderr)
        if args.command == "summarize":
            return _run_summarize(
                args, environment, configuration, stdout=stdout, stderr=stderr
            )
        return _run_show(args, configuration, stdout=stdout, stderr=stderr)

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def _run_index(
    args: argparse.Namespace,
    configuration: InputConfiguration,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Run index command.

    Args:
        args: Parsed CLI arguments.
        configuration: Validated input configuration.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    store = JsonIndexStore(configuration.store.directory)
    indexer = CodebaseIndexer(
        extractor=TypeScriptExtractor(),
        excluded_projects=configuration.excluded_projects,
    )
    try:
        written = asyncio.run(
            indexer.index_all(configuration.repositories, store, reindex=args.reindex)
        )
    except RepositoryError as exc:
        logger.warning(f"Repository indexing failed (error={exc})")
        stderr.write(f"Repository error: {exc}\n")
        return 2
    except PersistenceError as exc:
        logger.warning(f"Index persistence failed (error={exc})")
        stderr.write(f"Persistence error: {exc}\n")
        return 2
    logger.info(
        f"Indexing completed (repositories={len(configuration.repositories)} written={len(written)})"
    )
    for path in written:
        stdout.write(f"{path}\n")
    return 0


def _run_summarize(
    args: argparse.Namespace,
    environment: Environment,
    configuration: InputConfiguration,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Run summarize command.

    Args:
        args: Parsed CLI arguments.
        environment: Validated environment.
        configuration: Validated input configuration.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    store = JsonIndexStore(configuration.store.directory)
    if args.repository and not store.exists(args.repository):
        logger.warning(f"No index for repository (repository={args.repository})")
        stderr.write(f"No index found for repository: {args.repository}\n")
        return 2

    llm_client = build_llm_client(environment)
    settings = configuration.summarization
    summarizer = VerifiedSummarizer(
        llm_client=llm_client,
        tier_selector=TierTable(configuration.model_tiers()),
        rounds=settings.rounds,
        truncate_chars=settings.truncate_chars,
    )
    controller = BatchSummarizer(
        summarizer=summarizer,
        context_builder=ContextBuilder(),
        store=store,
        batch_size=settings.batch_size,
    )
    try:
        results = asyncio.run(_summarize(controller, store, args.repository))
    except PersistenceError as exc:
        logger.warning(f"Summary persistence failed (error={exc})")
        stderr.write(f"Persistence error: {exc}\n")
        return 2
    usage = getattr(llm_client, "usage", None)
    if isinstance(usage, TokenUsage):
        usage.log_totals()
    _write_results(results, stdout=stdout)
    return 0


async def _summarize(
    controller: BatchSummarizer, store: JsonIndexStore, repository: str | None
) -> list[BatchRunResult]:
    if repository is None:
        return await controller.summarize_store()
    path = store.path_for(repository)
    index = await asyncio.to_thread(store.load, path)
    return [await controller.summarize_all(index, path)]


def _run_show(
    args: argparse.Namespace,
    configuration: InputConfiguration,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Run show command.

    Args:
        args: Parsed CLI arguments.
        configuration: Validated input configuration.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    store = JsonIndexStore(configuration.store.directory)
    if not store.exists(args.repository):
        logger.warning(f"No index for repository (repository={args.repository})")
        stderr.write(f"No index found for repository: {args.repository}\n")
        return 2
    try:
        index = store.load(store.path_for(args.repository))
    except PersistenceError as exc:
        logger.warning(f"Index load failed (error={exc})")
        stderr.write(f"Persistence error: {exc}\n")
        return 2
    if args.format == "json":
        _write_json(index.file_summaries, stdout=stdout)
    else:
        _write_table(index.file_summaries, stdout=stdout)
    return 0


def _run_resolve(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run resolve command.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    repo_root = Path(args.repository).expanduser().resolve()
    if not repo_root.is_dir():
        logger.warning(f"Path does not exist (path={repo_root})")
        stderr.write(f"Path does not exist: {repo_root}\n")
        return 2
    resolver = ModuleResolver.from_tsconfig(load_tsconfig(repo_root))
    from_file = str((repo_root / args.from_file).resolve())
    stdout.write(f"{resolver.resolve(args.specifier, from_file)}\n")
    return 0


def build_llm_client(environment: Environment) -> LLMClient:
    """Create the configured LLM client.

    Args:
        environment: Validated environment.

    Returns:
        Configured LLM client.
    """
    if environment.provider == "ollama":
        return OllamaClient(provider_url=environment.provider_url)
    return OpenAIClient(
        provider_url=environment.provider_url, api_key=environment.openai_api_key
    )


def _write_results(results: list[BatchRunResult], stdout: TextIO) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    table = Table(show_header=True, expand=True)
    table.add_column("index", ratio=4, overflow="fold")
    table.add_column("pending", justify="right")
    table.add_column("summarized", justify="right")
    table.add_column("failed", justify="right")
    table.add_column("batches", justify="right")
    for result in results:
        table.add_row(
            str(result.index_path),
            str(result.total),
            str(result.summarized),
            str(len(result.failed)),
            str(result.batches),
        )
    console.print(table)


def _write_json(file_summaries: dict[str, dict], stdout: TextIO) -> None:
    """Write file summaries in JSON format.

    Args:
        file_summaries: Summaries keyed by file path.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(file_summaries, indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_table(file_summaries: dict[str, dict], stdout: TextIO) -> None:
    """Write file summaries as a table.

    Args:
        file_summaries: Summaries keyed by file path.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.rule("file summaries", style=Style(color="cyan"), characters="-")
    table = Table(show_header=True, show_lines=True, expand=True)
    for column, ratio in TABLE_COLUMN_RATIOS.items():
        table.add_column(column, ratio=ratio, overflow="fold")
    for file_name in sorted(file_summaries):
        summary = file_summaries[file_name]
        table.add_row(
            file_name,
            str(summary.get("tag", "")),
            str(summary.get("fileDescription", "")),
        )
    console.print(table)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
