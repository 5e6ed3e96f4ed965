# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Version-controlled file enumeration."""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS: int = 60


class RepositoryError(RuntimeError):
    """Represent an unreadable or non-version-controlled repository."""


def list_tracked_files(repo_root: Path, excluded_projects: Sequence[str] = ()) -> list[str]:
    """List tracked files of a git working tree.

    Args:
        repo_root: Repository working directory.
        excluded_projects: Substrings; any path containing one is dropped.

    Returns:
        Repository-relative POSIX paths in ``git ls-files`` order.

    Raises:
        RepositoryError: If the directory is missing or git fails.
    """
    if not repo_root.is_dir():
        logger.warning(f"Repository path is not a directory (repo_root={repo_root})")
        raise RepositoryError(f"Repository path is not a directory: {repo_root}")
    try:
        completed = subprocess.run(
            ["git", "ls-files"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning(f"git ls-files could not run (repo_root={repo_root} error={exc})")
        raise RepositoryError(str(exc)) from exc
    if completed.returncode != 0:
        message = completed.stderr.strip() or f"exit code {completed.returncode}"
        logger.warning(f"git ls-files failed (repo_root={repo_root} error={message})")
        raise RepositoryError(f"Could not retrieve files from {repo_root}: {message}")

    files = [line for line in completed.stdout.splitlines() if line]
    kept = [
        path
        for path in files
        if not any(exclusion in path for exclusion in excluded_projects)
    ]
    if len(kept) != len(files):
        logger.info(
            f"Excluded project paths dropped (repo_root={repo_root} excluded={len(files) - len(kept)})"
        )
    return kept
