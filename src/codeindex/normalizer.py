"""Type-erasing normalization of TypeScript sources for summarization context."""

import logging

from tree_sitter import Node

logger = logging.getLogger(__name__)

ERASED_NODE_TYPES: frozenset[str] = frozenset(
    {
        "comment",
        "type_annotation",
        "type_parameters",
        "type_arguments",
        "interface_declaration",
        "type_alias_declaration",
        "accessibility_modifier",
        "override_modifier",
        "implements_clause",
        "ambient_declaration",
        "abstract_method_signature",
        "function_signature",
        "method_signature",
        "index_signature",
    }
)
ERASED_KEYWORDS: frozenset[str] = frozenset({"abstract", "readonly", "declare"})
UNWRAPPED_NODE_TYPES: frozenset[str] = frozenset(
    {"as_expression", "satisfies_expression", "non_null_expression"}
)
_OPTIONAL_MARKER_PARENTS: frozenset[str] = frozenset(
    {"optional_parameter", "public_field_definition"}
)

Edit = tuple[int, int]


def render_compiled_code(root: Node, source: bytes) -> str:
    """Render a type-erased, comment-free equivalent of a parsed file.

    The output is advisory context: it approximates what a transpiler would
    emit for an ES module target without guaranteeing it is valid JavaScript.

    Args:
        root: Root node of the parsed file.
        source: Exact bytes the tree was parsed from.

    Returns:
        Normalized code text.
    """
    edits = _collect_erasures(root)
    buffer = bytearray(source)
    for start, end in sorted(edits, reverse=True):
        del buffer[start:end]
    return tidy_whitespace(buffer.decode("utf-8", errors="replace"))


def tidy_whitespace(code: str) -> str:
    """Strip trailing spaces and collapse runs of blank lines.

    Args:
        code: Code text.

    Returns:
        Code text with at most one consecutive blank line and no leading or
        trailing blank lines.
    """
    lines: list[str] = []
    for line in code.splitlines():
        stripped = line.rstrip()
        if not stripped and (not lines or not lines[-1]):
            continue
        lines.append(stripped)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def _collect_erasures(root: Node) -> list[Edit]:
    edits: list[Edit] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if _is_erased(node):
            edits.append((node.start_byte, node.end_byte))
            continue
        if node.type in UNWRAPPED_NODE_TYPES and node.named_child_count:
            inner = node.named_children[0]
            edits.append((inner.end_byte, node.end_byte))
            stack.append(inner)
            continue
        stack.extend(node.children)
    return edits


def _is_erased(node: Node) -> bool:
    if node.is_named:
        if node.type in ERASED_NODE_TYPES:
            return True
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            return declaration is not None and declaration.type in ERASED_NODE_TYPES
        if node.type == "import_statement":
            return _is_type_only_import(node)
        return False
    parent = node.parent
    if node.type in ERASED_KEYWORDS:
        return parent is not None and parent.type != "identifier"
    if node.type == "?" and parent is not None:
        return parent.type in _OPTIONAL_MARKER_PARENTS
    return False


def _is_type_only_import(node: Node) -> bool:
    children = node.children
    return len(children) > 1 and not children[1].is_named and children[1].type == "type"
