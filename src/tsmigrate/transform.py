"""
Source-to-source rewriting of one module into TypeScript.

Every rewrite is an Edit over byte ranges of the original tree-sitter parse;
bytes outside the edited spans (formatting, comments) are copied through
untouched. Each rewrite first checks whether its result is already present,
so running the transformation on its own output is a no-op.
"""

import logging
import posixpath
from dataclasses import dataclass, field

from tree_sitter import Node

from .aliases import AliasTable
from .classify import FUNCTION_TYPES, classify
from .config import MigrationConfig
from .errors import SourceParseError
from .extract import binding_of, call_arguments, first_parameter, hook_name, state_descriptor
from .models import ComponentKind, ComponentProfile, SourceUnit
from .parse import node_text, string_value, unwrap_parens
from .synthesize import TypeSynthesis, state_type_argument

log = logging.getLogger(__name__)

RETURN_TYPE = "JSX.Element"
REACT_TYPE_IMPORT = "import type React from 'react';"


@dataclass
class Edit:
    start: int
    end: int
    text: str


@dataclass
class TransformResult:
    code: str
    target_path: str
    companion_code: str | None = None
    companion_path: str | None = None
    edits: int = 0
    warnings: list[str] = field(default_factory=list)


def apply_edits(source: bytes, edits: list[Edit]) -> bytes:
    """
    Apply non-overlapping edits. Insertions at the same offset keep the order
    in which they were created.
    """
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    for a, b in zip(ordered, ordered[1:]):
        if b.start < a.end:
            raise ValueError(f"Overlapping edits at {a.start}-{a.end} and {b.start}-{b.end}")
    out = source
    for e in reversed(ordered):
        out = out[:e.start] + e.text.encode("utf-8") + out[e.end:]
    return out


# ── Tree queries ─────────────────────────────────────────────────────────────

def top_statement(node: Node) -> Node:
    while node.parent is not None and node.parent.type != "program":
        node = node.parent
    return node


def _leading_comment_start(stmt: Node) -> int:
    """Start of the comment block directly attached above a statement."""
    start = stmt
    prev = stmt.prev_sibling
    while prev is not None and prev.type == "comment" and prev.end_point[0] >= start.start_point[0] - 1:
        start = prev
        prev = prev.prev_sibling
    return start.start_byte


def _import_statements(root: Node) -> list[Node]:
    return [c for c in root.named_children if c.type == "import_statement"]


def imported_names(root: Node) -> set[str]:
    names: set[str] = set()
    for stmt in _import_statements(root):
        for clause in stmt.named_children:
            if clause.type != "import_clause":
                continue
            for c in clause.named_children:
                if c.type == "identifier":
                    names.add(node_text(c))
                elif c.type == "namespace_import":
                    names.update(node_text(i) for i in c.named_children if i.type == "identifier")
                elif c.type == "named_imports":
                    for spec in c.named_children:
                        if spec.type == "import_specifier":
                            alias = spec.child_by_field_name("alias")
                            names.add(node_text(alias or spec.child_by_field_name("name")))
    return names


def has_type_declaration(root: Node, name: str) -> bool:
    for stmt in root.named_children:
        node = stmt
        if stmt.type == "export_statement":
            node = stmt.child_by_field_name("declaration")
            if node is None:
                continue
        if node.type in ("interface_declaration", "type_alias_declaration"):
            if node_text(node.child_by_field_name("name")) == name:
                return True
    return False


def _top_insertion(root: Node) -> tuple[int, str, str]:
    """(offset, prefix, suffix) for a new import line: after the last import, else after the directive."""
    imports = _import_statements(root)
    if imports:
        return imports[-1].end_byte, "\n", ""
    first = next((c for c in root.named_children if c.type not in ("comment", "hash_bang_line")), None)
    if first is not None and first.type == "expression_statement" and first.named_children:
        if string_value(first.named_children[0]) is not None:
            return first.end_byte, "\n", ""
    return 0, "", "\n"


def _returns_null(fn: Node) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return unwrap_parens(body).type == "null"
    stack = list(body.named_children)
    while stack:
        node = stack.pop()
        if node.type in FUNCTION_TYPES or node.type in ("class_declaration", "class"):
            continue
        if node.type == "return_statement":
            values = [c for c in node.named_children if c.type != "comment"]
            if values and unwrap_parens(values[0]).type == "null":
                return True
        stack.extend(node.named_children)
    return False


# ── Rewrites ─────────────────────────────────────────────────────────────────

def import_edits(root: Node, aliases: AliasTable, importer: str, writer: str) -> list[Edit]:
    edits: list[Edit] = []
    for stmt in root.named_children:
        if stmt.type not in ("import_statement", "export_statement"):
            continue
        source = stmt.child_by_field_name("source")
        spec = string_value(source)
        if spec is None or not aliases.is_internal(spec):
            continue
        normalized = aliases.normalize(spec, importer, writer)
        if normalized != spec:
            quote = node_text(source)[0]
            edits.append(Edit(source.start_byte, source.end_byte, f"{quote}{normalized}{quote}"))
    return edits


def parameter_edits(fn: Node, interface_name: str | None, annotate_return: bool) -> list[Edit]:
    """Annotate the props parameter and the return type of a function component."""
    return_type = None
    if annotate_return and fn.child_by_field_name("return_type") is None:
        if not any(c.type == "async" for c in fn.children):
            return_type = f"{RETURN_TYPE} | null" if _returns_null(fn) else RETURN_TYPE

    single = fn.child_by_field_name("parameter")
    if single is not None:
        # `props => ...` needs parentheses to take an annotation
        annotation = f": {interface_name}" if interface_name else ""
        suffix = f": {return_type}" if return_type else ""
        if not annotation and not suffix:
            return []
        return [Edit(single.start_byte, single.end_byte, f"({node_text(single)}{annotation}){suffix}")]

    edits: list[Edit] = []
    params = fn.child_by_field_name("parameters")
    param = first_parameter(fn)
    if interface_name and param is not None:
        target = param
        if param.type in ("required_parameter", "optional_parameter"):
            target = None if param.child_by_field_name("type") is not None else param.child_by_field_name("pattern")
        elif param.type == "assignment_pattern":
            target = param.child_by_field_name("left")
        if target is not None and target.type in ("identifier", "object_pattern", "array_pattern"):
            edits.append(Edit(target.end_byte, target.end_byte, f": {interface_name}"))

    if return_type and params is not None:
        edits.append(Edit(params.end_byte, params.end_byte, f": {return_type}"))
    return edits


def class_props_edit(cls: Node, interface_name: str) -> Edit | None:
    """``extends React.Component`` → ``extends React.Component<XProps>``."""
    for child in cls.children:
        if child.type != "class_heritage":
            continue
        for sub in child.named_children:
            if sub.type == "extends_clause":
                if sub.child_by_field_name("type_arguments") is not None:
                    return None
                value = sub.child_by_field_name("value")
            elif sub.type == "implements_clause":
                continue
            else:
                value = sub
            if value is None or "<" in node_text(value):
                return None
            return Edit(value.end_byte, value.end_byte, f"<{interface_name}>")
    return None


def state_type_edits(root: Node) -> list[Edit]:
    """Type each untyped ``useState`` call from its own initializer."""
    edits: list[Edit] = []
    stack = [root]
    while stack:
        node = stack.pop()
        stack.extend(node.children)
        if node.type != "call_expression" or hook_name(node) != "useState":
            continue
        if node.child_by_field_name("type_arguments") is not None:
            continue
        descriptor = state_descriptor("useState", binding_of(node), call_arguments(node))
        callee = node.child_by_field_name("function")
        edits.append(Edit(callee.end_byte, callee.end_byte, f"<{state_type_argument(descriptor)}>"))
    return edits


def companion_path_for(target_path: str) -> str:
    return posixpath.splitext(target_path)[0] + ".types.ts"


def transform_unit(
    unit: SourceUnit,
    profile: ComponentProfile,
    synthesis: TypeSynthesis,
    config: MigrationConfig,
    target_path: str,
) -> TransformResult:
    """Rewrite one unit for ``target_path``. Raises SourceParseError on unparsable input."""
    if unit.tree is None or unit.tree.root_node.has_error:
        raise SourceParseError(f"{unit.path}: source has syntax errors")

    root = unit.tree.root_node
    classification = classify(root, unit.path)
    result = TransformResult(code="", target_path=target_path, warnings=list(synthesis.unknowns))

    edits = import_edits(root, config.alias_table(), unit.path, target_path)
    top, prefix, suffix = _top_insertion(root)

    interface_name = synthesis.interface_name
    if interface_name:
        present = has_type_declaration(root, interface_name) or interface_name in imported_names(root)
        if not present:
            if synthesis.mode == "external":
                result.companion_path = companion_path_for(target_path)
                result.companion_code = synthesis.companion_text()
                module = "./" + posixpath.basename(posixpath.splitext(result.companion_path)[0])
                edits.append(Edit(top, top, f"{prefix}import type {{ {interface_name} }} from '{module}';{suffix}"))
            else:
                if synthesis.needs_react_namespace and "React" not in imported_names(root):
                    edits.append(Edit(top, top, f"{prefix}{REACT_TYPE_IMPORT}{suffix}"))
                anchor = classification.node if classification.node is not None else root
                pos = _leading_comment_start(top_statement(anchor)) if anchor is not root else top
                edits.append(Edit(pos, pos, f"{synthesis.interface_text}\n"))

    node = classification.node
    if node is not None and profile.kind == ComponentKind.FUNCTION_COMPONENT and node.type in FUNCTION_TYPES:
        edits.extend(parameter_edits(node, interface_name, annotate_return=True))
    elif node is not None and profile.kind == ComponentKind.CLASS_COMPONENT and interface_name:
        edit = class_props_edit(node, interface_name)
        if edit is not None:
            edits.append(edit)

    edits.extend(state_type_edits(root))

    result.code = apply_edits(unit.source, edits).decode("utf-8", errors="replace")
    result.edits = len(edits)
    log.debug("%s → %s: %d edits", unit.path, target_path, len(edits))
    return result
