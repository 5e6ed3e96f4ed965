# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Best-effort module specifier resolution for TypeScript-like sources."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_EXTENSION: str = ".ts"
RELATIVE_PREFIXES: tuple[str, ...] = ("./", "../")
TSCONFIG_FILE_NAME: str = "tsconfig.json"
_MAX_EXTENDS_DEPTH: int = 5


@dataclass(frozen=True)
class TsConfigPaths:
    """Represent the alias-relevant part of a ``tsconfig.json``.

    Attributes:
        base_url: Absolute directory non-relative specifiers resolve against.
        paths: Alias patterns mapped to their target patterns, in declaration
            order.
    """

    base_url: Path
    paths: dict[str, list[str]] = field(default_factory=dict)


class ModuleResolver:
    """Resolve import specifiers to absolute file paths.

    Resolution never raises. Anything that cannot be located degrades to the
    literal specifier (or, for relative specifiers, the joined path) and is
    recorded by the caller as an unresolved import.
    """

    def __init__(
        self,
        base_url: Path,
        path_aliases: dict[str, list[str]] | None = None,
        source_extension: str = DEFAULT_SOURCE_EXTENSION,
    ) -> None:
        """Initialize resolver configuration.

        Args:
            base_url: Absolute directory used for alias targets and bare
                specifiers.
            path_aliases: ``compilerOptions.paths`` style alias table. At most
                one ``*`` wildcard per pattern is honored.
            source_extension: Extension probed for extensionless specifiers.
        """
        self._base_url = str(base_url)
        self._source_extension = source_extension
        self._aliases = [
            (pattern, _compile_alias_pattern(pattern), list(targets))
            for pattern, targets in (path_aliases or {}).items()
        ]

    @classmethod
    def from_tsconfig(
        cls, config: TsConfigPaths, source_extension: str = DEFAULT_SOURCE_EXTENSION
    ) -> "ModuleResolver":
        return cls(
            base_url=config.base_url,
            path_aliases=config.paths,
            source_extension=source_extension,
        )

    def resolve(self, specifier: str, from_file: str) -> str:
        """Resolve one import specifier.

        Args:
            specifier: Module specifier as written in the import declaration.
            from_file: Absolute path of the importing file.

        Returns:
            Absolute path of the resolved file, or the best-effort fallback.
        """
        if specifier.startswith(RELATIVE_PREFIXES):
            candidate = _join(os.path.dirname(from_file), specifier)
            return self._probe(candidate) or candidate

        for pattern, regex, targets in self._aliases:
            match = regex.match(specifier)
            if match is None:
                continue
            wildcard = match.group(1) if regex.groups else ""
            for target in targets:
                candidate = _join(self._base_url, target.replace("*", wildcard, 1))
                resolved = self._probe(candidate)
                if resolved is not None:
                    return resolved
            logger.debug(
                f"Alias matched but no target exists (specifier={specifier} pattern={pattern})"
            )

        resolved = self._probe(_join(self._base_url, specifier))
        if resolved is not None:
            return resolved
        logger.debug(
            f"Unresolved import kept literally (specifier={specifier} from_file={from_file})"
        )
        return specifier

    def resolve_reference(self, reference: str, from_file: str) -> str:
        """Resolve a co-located file reference such as a template or stylesheet.

        Args:
            reference: Reference text relative to the declaring file.
            from_file: Absolute path of the declaring file.

        Returns:
            Absolute path when the referenced file exists, else ``reference``.
        """
        candidate = _join(os.path.dirname(from_file), reference)
        if os.path.exists(candidate):
            return candidate
        logger.warning(
            f"Referenced file does not exist (reference={reference} from_file={from_file})"
        )
        return reference

    def _probe(self, candidate: str) -> str | None:
        """Probe file, index file and extension variants in order."""
        if os.path.isfile(candidate):
            return candidate
        index_file = os.path.join(candidate, f"index{self._source_extension}")
        if os.path.isfile(index_file):
            return index_file
        with_extension = f"{candidate}{self._source_extension}"
        if os.path.isfile(with_extension):
            return with_extension
        return None


def load_tsconfig(repo_root: Path) -> TsConfigPaths:
    """Load ``baseUrl`` and ``paths`` from the repository ``tsconfig.json``.

    Missing or unreadable configuration degrades to the repository root with
    no aliases.

    Args:
        repo_root: Absolute repository root.

    Returns:
        Alias configuration for :class:`ModuleResolver`.
    """
    config_path = repo_root / TSCONFIG_FILE_NAME
    if not config_path.is_file():
        logger.warning(
            f"No tsconfig found; resolving against repository root (repo_root={repo_root})"
        )
        return TsConfigPaths(base_url=repo_root)
    options = _read_compiler_options(config_path, depth=0)
    base_url = options.get("baseUrl")
    base_dir = options.get("__base_dir__", config_path.parent)
    paths = options.get("paths") or {}
    return TsConfigPaths(
        base_url=Path(_join(str(base_dir), base_url)) if base_url else repo_root,
        paths={
            str(key): [value] if isinstance(value, str) else [str(v) for v in value]
            for key, value in paths.items()
            if isinstance(value, (str, list))
        },
    )


def _read_compiler_options(config_path: Path, depth: int) -> dict:
    """Read ``compilerOptions`` following relative ``extends`` chains."""
    try:
        payload = json.loads(strip_json_comments(config_path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning(
            f"Failed to read tsconfig (config_path={config_path} error={exc})"
        )
        return {}
    if not isinstance(payload, dict):
        logger.warning(f"Invalid tsconfig; expected an object (config_path={config_path})")
        return {}

    options: dict = {}
    parent = payload.get("extends")
    if (
        isinstance(parent, str)
        and parent.startswith(RELATIVE_PREFIXES)
        and depth < _MAX_EXTENDS_DEPTH
    ):
        parent_path = Path(_join(str(config_path.parent), parent))
        if parent_path.suffix != ".json":
            parent_path = parent_path.with_name(f"{parent_path.name}.json")
        options.update(_read_compiler_options(parent_path, depth=depth + 1))

    compiler = payload.get("compilerOptions")
    if isinstance(compiler, dict):
        options.update(compiler)
        if "baseUrl" in compiler:
            options["__base_dir__"] = config_path.parent
    return options


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas outside strings."""
    result: list[str] = []
    index = 0
    in_string = False
    length = len(text)
    while index < length:
        char = text[index]
        if in_string:
            result.append(char)
            if char == "\\" and index + 1 < length:
                result.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
            result.append(char)
            index += 1
        elif text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline == -1 else newline
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = length if end == -1 else end + 2
        else:
            result.append(char)
            index += 1
    return re.sub(r",(\s*[}\]])", r"\1", "".join(result))


def _compile_alias_pattern(pattern: str) -> re.Pattern[str]:
    if "*" not in pattern:
        return re.compile(f"^{re.escape(pattern)}$")
    prefix, suffix = pattern.split("*", 1)
    return re.compile(f"^{re.escape(prefix)}(.*){re.escape(suffix)}$")


def _join(base: str, relative: str) -> str:
    return os.path.normpath(os.path.join(base, relative))
