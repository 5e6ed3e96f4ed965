# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Textual extraction of co-located file references from decorator metadata."""

import re
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ReferencePattern:
    """Describe one metadata key whose value names co-located files.

    Attributes:
        key: Metadata key, for diagnostics.
        regex: Pattern exposing the raw value in the ``value`` group.
        is_list: Whether the value is a bracketed list of quoted entries.
    """

    key: str
    regex: re.Pattern[str]
    is_list: bool = False


TEMPLATE_URL_PATTERN = ReferencePattern(
    key="templateUrl",
    regex=re.compile(r"templateUrl\s*:\s*(['\"`])(?P<value>.+?)\1"),
)
STYLE_URLS_PATTERN = ReferencePattern(
    key="styleUrls",
    regex=re.compile(r"styleUrls\s*:\s*\[(?P<value>[^\]]*)\]"),
    is_list=True,
)
STYLE_URL_PATTERN = ReferencePattern(
    key="styleUrl",
    regex=re.compile(r"styleUrl\s*:\s*(['\"`])(?P<value>.+?)\1"),
)

DEFAULT_REFERENCE_PATTERNS: tuple[ReferencePattern, ...] = (
    TEMPLATE_URL_PATTERN,
    STYLE_URLS_PATTERN,
    STYLE_URL_PATTERN,
)


class ReferenceExtractor(Protocol):
    """Find file references inside decorator argument text."""

    def extract(self, text: str) -> list[str]:
        """Return referenced file names in order of appearance."""


class PatternReferenceExtractor:
    """Extract file references by matching a configurable pattern set."""

    def __init__(
        self, patterns: tuple[ReferencePattern, ...] = DEFAULT_REFERENCE_PATTERNS
    ) -> None:
        self._patterns = patterns

    def extract(self, text: str) -> list[str]:
        """Extract references from one decorator argument.

        Args:
            text: Raw argument source text.

        Returns:
            Referenced file names, pattern order first, then match order.
        """
        references: list[str] = []
        for pattern in self._patterns:
            for match in pattern.regex.finditer(text):
                value = match.group("value")
                if pattern.is_list:
                    references.extend(_split_list(value))
                elif value.strip():
                    references.append(value.strip())
        return references


def _split_list(value: str) -> list[str]:
    entries = [part.strip().strip("'\"`").strip() for part in value.split(",")]
    return [entry for entry in entries if entry]
