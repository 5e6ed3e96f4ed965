# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for the AST index artifact."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Parameter:
    """Represent one declared parameter."""

    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Parameter":
        return cls(name=str(payload.get("name", "")), type=str(payload.get("type", "")))


@dataclass(frozen=True)
class DecoratorInfo:
    """Represent one decorator application and its raw argument texts."""

    name: str
    arguments: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": list(self.arguments)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DecoratorInfo":
        return cls(
            name=str(payload.get("name", "")),
            arguments=tuple(str(arg) for arg in payload.get("arguments", [])),
        )


@dataclass(frozen=True)
class FunctionInfo:
    """Represent one top-level function declaration."""

    name: str
    parameters: tuple[Parameter, ...]
    return_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "parameters": [param.to_dict() for param in self.parameters],
            "returnType": self.return_type,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "FunctionInfo":
        return cls(
            name=str(payload.get("name", "")),
            parameters=tuple(
                Parameter.from_dict(item) for item in payload.get("parameters", [])
            ),
            return_type=str(payload.get("returnType", "")),
        )


@dataclass(frozen=True)
class MethodInfo:
    """Represent one class method declaration."""

    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    decorators: tuple[DecoratorInfo, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "parameters": [param.to_dict() for param in self.parameters],
            "returnType": self.return_type,
            "decorators": [decorator.to_dict() for decorator in self.decorators],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "MethodInfo":
        return cls(
            name=str(payload.get("name", "")),
            parameters=tuple(
                Parameter.from_dict(item) for item in payload.get("parameters", [])
            ),
            return_type=str(payload.get("returnType", "")),
            decorators=tuple(
                DecoratorInfo.from_dict(item) for item in payload.get("decorators", [])
            ),
        )


@dataclass(frozen=True)
class ClassInfo:
    """Represent one class declaration with its decorators and methods."""

    name: str
    decorators: tuple[DecoratorInfo, ...]
    methods: tuple[MethodInfo, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "decorators": [decorator.to_dict() for decorator in self.decorators],
            "methods": [method.to_dict() for method in self.methods],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ClassInfo":
        return cls(
            name=str(payload.get("name", "")),
            decorators=tuple(
                DecoratorInfo.from_dict(item) for item in payload.get("decorators", [])
            ),
            methods=tuple(
                MethodInfo.from_dict(item) for item in payload.get("methods", [])
            ),
        )


@dataclass(frozen=True)
class PropertyInfo:
    """Represent one interface property signature."""

    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PropertyInfo":
        return cls(name=str(payload.get("name", "")), type=str(payload.get("type", "")))


@dataclass(frozen=True)
class InterfaceInfo:
    """Represent one interface declaration."""

    name: str
    properties: tuple[PropertyInfo, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "properties": [prop.to_dict() for prop in self.properties],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "InterfaceInfo":
        return cls(
            name=str(payload.get("name", "")),
            properties=tuple(
                PropertyInfo.from_dict(item) for item in payload.get("properties", [])
            ),
        )


@dataclass(frozen=True)
class SourceRecord:
    """Represent the structural facts extracted from one source file.

    Attributes:
        repository: Absolute repository root the file belongs to.
        file_name: Absolute source file path.
        imports: Resolved import targets in declaration order. Unresolved
            specifiers are kept literally; duplicates are allowed.
        functions: Top-level function declarations.
        classes: Class declarations with decorators and methods.
        interfaces: Interface declarations with property signatures.
        source_code: Raw file text.
        compiled_code: Type-erased rendering of ``source_code``.
    """

    repository: str
    file_name: str
    imports: tuple[str, ...] = ()
    functions: tuple[FunctionInfo, ...] = ()
    classes: tuple[ClassInfo, ...] = ()
    interfaces: tuple[InterfaceInfo, ...] = ()
    source_code: str = ""
    compiled_code: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "fileName": self.file_name,
            "imports": list(self.imports),
            "functions": [item.to_dict() for item in self.functions],
            "classes": [item.to_dict() for item in self.classes],
            "interfaces": [item.to_dict() for item in self.interfaces],
            "sourceCode": self.source_code,
            "compiledCode": self.compiled_code,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SourceRecord":
        return cls(
            repository=str(payload.get("repository", "")),
            file_name=str(payload.get("fileName", "")),
            imports=tuple(str(item) for item in payload.get("imports") or []),
            functions=tuple(
                FunctionInfo.from_dict(item) for item in payload.get("functions") or []
            ),
            classes=tuple(
                ClassInfo.from_dict(item) for item in payload.get("classes") or []
            ),
            interfaces=tuple(
                InterfaceInfo.from_dict(item)
                for item in payload.get("interfaces") or []
            ),
            source_code=str(payload.get("sourceCode") or ""),
            compiled_code=str(payload.get("compiledCode") or ""),
        )


@dataclass
class AstIndex:
    """Represent the persisted unit of work for one repository.

    ``file_summaries`` is the idempotence key of summarization: a path present
    there is never summarized again. It only grows through
    :meth:`merge_summaries`.
    """

    repository: str = ""
    files: list[str] = field(default_factory=list)
    codebase_info: list[SourceRecord] = field(default_factory=list)
    file_summaries: dict[str, dict[str, Any]] = field(default_factory=dict)
    repo_summary: dict[str, Any] | None = None

    @property
    def repository_root(self) -> str:
        """Return the repository root, falling back to the first record."""
        if self.repository:
            return self.repository
        if self.codebase_info:
            return self.codebase_info[0].repository
        return ""

    def record_for(self, file_name: str) -> SourceRecord | None:
        for record in self.codebase_info:
            if record.file_name == file_name:
                return record
        return None

    def is_summarized(self, file_name: str) -> bool:
        return file_name in self.file_summaries

    def merge_summaries(self, summaries: dict[str, dict[str, Any]]) -> int:
        """Merge summaries keyed by file path into the index.

        Args:
            summaries: New summaries keyed by absolute file path. Empty values
                are ignored.

        Returns:
            Number of merged entries.
        """
        merged = 0
        for file_name, summary in summaries.items():
            if not summary:
                continue
            self.file_summaries[file_name] = summary
            merged += 1
        return merged

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "repository": self.repository,
            "files": list(self.files),
            "codebaseInfo": [record.to_dict() for record in self.codebase_info],
            "fileSummaries": dict(self.file_summaries),
        }
        if self.repo_summary is not None:
            payload["repoSummary"] = self.repo_summary
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AstIndex":
        return cls(
            repository=str(payload.get("repository") or ""),
            files=[str(item) for item in payload.get("files") or []],
            codebase_info=[
                SourceRecord.from_dict(item)
                for item in payload.get("codebaseInfo") or []
            ],
            file_summaries=dict(payload.get("fileSummaries") or {}),
            repo_summary=payload.get("repoSummary"),
        )
