"""Extractor interfaces and DTOs for structural source extraction."""

from dataclasses import dataclass
from typing import Protocol

from codeindex.model import ClassInfo, FunctionInfo, InterfaceInfo


@dataclass(frozen=True)
class ExtractionError:
    """Represent a recoverable extraction failure for one stage of one file."""

    file_path: str
    stage: str
    message: str


@dataclass(frozen=True)
class ExtractionResult:
    """Represent the structural facts extracted from one parsed file.

    Attributes:
        functions: Top-level function declarations.
        classes: Class declarations.
        interfaces: Interface declarations.
        import_specifiers: Module specifiers in declaration order, unresolved.
        decorator_references: Co-located file references found in class
            decorator arguments, unresolved.
        compiled_code: Normalized rendering of the file; empty when
            normalization failed.
        errors: Stages that failed; their fields keep default values.
    """

    functions: tuple[FunctionInfo, ...] = ()
    classes: tuple[ClassInfo, ...] = ()
    interfaces: tuple[InterfaceInfo, ...] = ()
    import_specifiers: tuple[str, ...] = ()
    decorator_references: tuple[str, ...] = ()
    compiled_code: str = ""
    errors: tuple[ExtractionError, ...] = ()


class Extractor(Protocol):
    """Language-agnostic structural extractor contract."""

    def extract(self, file_path: str, source: str) -> ExtractionResult:
        """Extract structure from one file's source text."""
