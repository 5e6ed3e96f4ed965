# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""TypeScript structural extractor implementation."""

import logging
from collections.abc import Callable, Iterator
from typing import TypeVar

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from codeindex.extractor import ExtractionError, ExtractionResult
from codeindex.model import (
    ClassInfo,
    DecoratorInfo,
    FunctionInfo,
    InterfaceInfo,
    MethodInfo,
    Parameter,
    PropertyInfo,
)
from codeindex.normalizer import render_compiled_code
from codeindex.references import PatternReferenceExtractor, ReferenceExtractor

logger = logging.getLogger(__name__)

TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())

UNDECLARED_TYPE: str = "any"
FUNCTION_NODE_TYPES: frozenset[str] = frozenset(
    {"function_declaration", "generator_function_declaration"}
)
CLASS_NODE_TYPES: frozenset[str] = frozenset(
    {"class_declaration", "abstract_class_declaration"}
)
PARAMETER_NODE_TYPES: frozenset[str] = frozenset(
    {"required_parameter", "optional_parameter"}
)
SKIPPED_METHOD_NAMES: frozenset[str] = frozenset({"constructor"})
ACCESSOR_KEYWORDS: frozenset[str] = frozenset({"get", "set"})

T = TypeVar("T")

# Re-exports with a source clause (`export * from`, `export { x } from`) are dependencies too.
_MODULE_STATEMENTS = frozenset({"import_statement", "export_statement"})


class TypeScriptExtractor:
    """Extract functions, classes, interfaces and imports from TypeScript files."""

    def __init__(self, reference_extractor: ReferenceExtractor | None = None) -> None:
        """Initialize the extractor.

        Args:
            reference_extractor: Finds co-located file references in class
                decorator arguments. Defaults to template/style patterns.
        """
        self._reference_extractor = reference_extractor or PatternReferenceExtractor()

    def extract(self, file_path: str, source: str) -> ExtractionResult:
        """Extract structure from one TypeScript file.

        Each stage runs independently so that one failing stage leaves the
        others intact.

        Args:
            file_path: Absolute path, used for diagnostics.
            source: File text.

        Returns:
            Extraction result with per-stage errors.
        """
        source_bytes = source.encode("utf-8")
        # Parsers are not thread-safe; one per call.
        tree = Parser(TS_LANGUAGE).parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            logger.warning(
                f"Source contains syntax errors; extracting partial structure (file_path={file_path})"
            )

        errors: list[ExtractionError] = []
        functions = self._run_stage(
            "functions", file_path, errors, (), lambda: self._extract_functions(root)
        )
        classes = self._run_stage(
            "classes", file_path, errors, (), lambda: self._extract_classes(root)
        )
        interfaces = self._run_stage(
            "interfaces", file_path, errors, (), lambda: self._extract_interfaces(root)
        )
        imports = self._run_stage(
            "imports", file_path, errors, (), lambda: self._extract_imports(root)
        )
        references = self._run_stage(
            "decorator_references",
            file_path,
            errors,
            (),
            lambda: self._extract_references(classes),
        )
        compiled_code = self._run_stage(
            "normalization",
            file_path,
            errors,
            "",
            lambda: render_compiled_code(root, source_bytes),
        )
        return ExtractionResult(
            functions=functions,
            classes=classes,
            interfaces=interfaces,
            import_specifiers=imports,
            decorator_references=references,
            compiled_code=compiled_code,
            errors=tuple(errors),
        )

    def _run_stage(
        self,
        stage: str,
        file_path: str,
        errors: list[ExtractionError],
        default: T,
        action: Callable[[], T],
    ) -> T:
        try:
            return action()
        except (
            AttributeError,
            IndexError,
            TypeError,
            ValueError,
            RecursionError,
        ) as exc:
            logger.warning(
                f"Extraction stage failed (file_path={file_path} stage={stage} error={exc})"
            )
            errors.append(
                ExtractionError(file_path=file_path, stage=stage, message=str(exc))
            )
            return default

    def _extract_functions(self, root: Node) -> tuple[FunctionInfo, ...]:
        return tuple(
            FunctionInfo(
                name=_field_text(node, "name"),
                parameters=_parameters(node),
                return_type=_annotation_text(node.child_by_field_name("return_type")),
            )
            for node, _ in _top_level_declarations(root)
            if node.type in FUNCTION_NODE_TYPES
        )

    def _extract_classes(self, root: Node) -> tuple[ClassInfo, ...]:
        classes: list[ClassInfo] = []
        for node, export_decorators in _top_level_declarations(root):
            if node.type not in CLASS_NODE_TYPES:
                continue
            decorators = export_decorators + [
                child for child in node.children if child.type == "decorator"
            ]
            classes.append(
                ClassInfo(
                    name=_field_text(node, "name"),
                    decorators=tuple(_decorator_info(item) for item in decorators),
                    methods=tuple(self._extract_methods(node)),
                )
            )
        return tuple(classes)

    def _extract_methods(self, class_node: Node) -> Iterator[MethodInfo]:
        body = class_node.child_by_field_name("body")
        if body is None:
            return
        pending: list[Node] = []
        for member in body.named_children:
            if member.type == "decorator":
                pending.append(member)
                continue
            if member.type != "method_definition" or not _is_plain_method(member):
                pending = []
                continue
            own = [child for child in member.children if child.type == "decorator"]
            yield MethodInfo(
                name=_field_text(member, "name"),
                parameters=_parameters(member),
                return_type=_annotation_text(member.child_by_field_name("return_type")),
                decorators=tuple(_decorator_info(item) for item in pending + own),
            )
            pending = []

    def _extract_interfaces(self, root: Node) -> tuple[InterfaceInfo, ...]:
        interfaces: list[InterfaceInfo] = []
        for node, _ in _top_level_declarations(root):
            if node.type != "interface_declaration":
                continue
            body = node.child_by_field_name("body")
            members = body.named_children if body is not None else []
            interfaces.append(
                InterfaceInfo(
                    name=_field_text(node, "name"),
                    properties=tuple(
                        PropertyInfo(
                            name=_field_text(member, "name"),
                            type=_annotation_text(member.child_by_field_name("type")),
                        )
                        for member in members
                        if member.type == "property_signature"
                    ),
                )
            )
        return tuple(interfaces)

    def _extract_imports(self, root: Node) -> tuple[str, ...]:
        specifiers: list[str] = []
        for node in root.named_children:
            if node.type not in _MODULE_STATEMENTS:
                continue
            source = node.child_by_field_name("source")
            if source is not None:
                specifiers.append(_string_value(source))
        return tuple(specifiers)

    def _extract_references(self, classes: tuple[ClassInfo, ...]) -> tuple[str, ...]:
        references: list[str] = []
        for class_info in classes:
            for decorator in class_info.decorators:
                for argument in decorator.arguments:
                    references.extend(self._reference_extractor.extract(argument))
        return tuple(references)


def _top_level_declarations(root: Node) -> Iterator[tuple[Node, list[Node]]]:
    """Yield top-level declarations, unwrapping ``export`` statements.

    Decorators written before ``export`` belong to the export statement in the
    tree and are yielded alongside the declaration.
    """
    for node in root.named_children:
        if node.type != "export_statement":
            yield node, []
            continue
        declaration = node.child_by_field_name(
            "declaration"
        ) or node.child_by_field_name("value")
        if declaration is None:
            continue
        decorators = [child for child in node.children if child.type == "decorator"]
        yield declaration, decorators


def _is_plain_method(node: Node) -> bool:
    if _field_text(node, "name") in SKIPPED_METHOD_NAMES:
        return False
    return not any(
        not child.is_named and child.type in ACCESSOR_KEYWORDS
        for child in node.children
    )


def _parameters(node: Node) -> tuple[Parameter, ...]:
    parameters_node = node.child_by_field_name("parameters")
    if parameters_node is None:
        return ()
    parameters: list[Parameter] = []
    for child in parameters_node.named_children:
        if child.type not in PARAMETER_NODE_TYPES:
            continue
        name = _field_text(child, "pattern").removeprefix("...")
        parameters.append(
            Parameter(
                name=name,
                type=_annotation_text(child.child_by_field_name("type")),
            )
        )
    return tuple(parameters)


def _decorator_info(node: Node) -> DecoratorInfo:
    expression = node.named_children[0] if node.named_child_count else None
    if expression is None:
        return DecoratorInfo(name="")
    if expression.type == "call_expression":
        function = expression.child_by_field_name("function")
        arguments = expression.child_by_field_name("arguments")
        return DecoratorInfo(
            name=_last_segment(_text(function)),
            arguments=tuple(
                _text(argument)
                for argument in (arguments.named_children if arguments else [])
                if argument.type != "comment"
            ),
        )
    return DecoratorInfo(name=_last_segment(_text(expression)))


def _annotation_text(node: Node | None) -> str:
    if node is None:
        return UNDECLARED_TYPE
    text = _text(node).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or UNDECLARED_TYPE


def _string_value(node: Node) -> str:
    fragments = [child for child in node.named_children if child.type == "string_fragment"]
    if fragments:
        return "".join(_text(fragment) for fragment in fragments)
    return _text(node).strip("'\"`")


def _field_text(node: Node, field_name: str) -> str:
    return _text(node.child_by_field_name(field_name))


def _last_segment(text: str) -> str:
    return text.rsplit(".", 1)[-1]


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")
