"""
Structural classification of a parsed module.

A prioritized chain of predicates over the syntax tree; the first predicate
that matches decides the component kind. Every predicate is a pure function
of the root node returning a Match (declaration name and node) or None.

The returns-markup test is shallow: a function counts as a
component when a direct return, or a return one block deep (inside an if,
try, or loop body), produces markup. Returns nested two or more blocks deep
are not inspected.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Callable, Iterator, NamedTuple

from tree_sitter import Node

from .models import ComponentKind
from .parse import node_text, string_value, unwrap_parens, walk_tree

log = logging.getLogger(__name__)

FUNCTION_TYPES = frozenset({
    "function_declaration", "function_expression", "function",
    "arrow_function", "generator_function_declaration",
})
CLASS_TYPES = frozenset({"class_declaration", "class", "abstract_class_declaration"})
MARKUP_TYPES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
COMPONENT_BASES = frozenset({"Component", "PureComponent", "React.Component", "React.PureComponent"})
DIRECTIVES = ("use client", "use server")
HOOK_NAME = re.compile(r"^use[A-Z0-9]")

_BLOCK_CLAUSES = ("else_clause", "catch_clause", "finally_clause")


class Match(NamedTuple):
    name: str | None
    node: Node


@dataclass
class Declaration:
    name: str | None
    node: Node          # declared value: function, class, call, identifier, ...
    statement: Node     # top-level statement holding the declaration
    exported: bool
    default: bool


@dataclass
class Classification:
    kind: ComponentKind
    name: str
    declaration: str | None = None      # name of the matched declaration
    node: Node | None = None            # matched declaration node
    exported: bool = False
    export_type: str = "none"
    boundary: str | None = None


# ── Tree helpers ─────────────────────────────────────────────────────────────

def callee_name(call: Node) -> str | None:
    """``foo(...)`` → "foo"; ``React.foo(...)`` → "foo"."""
    fn = call.child_by_field_name("function")
    if fn is None:
        return None
    if fn.type == "identifier":
        return node_text(fn)
    if fn.type == "member_expression":
        obj = fn.child_by_field_name("object")
        prop = fn.child_by_field_name("property")
        if obj is not None and obj.type == "identifier" and prop is not None:
            return node_text(prop)
    return None


def call_arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type != "comment"]


def _is_default_export(stmt: Node) -> bool:
    return any(c.type == "default" for c in stmt.children)


def top_level_declarations(root: Node) -> Iterator[Declaration]:
    """Yield every value declared (or default-exported) at module level."""
    for stmt in root.named_children:
        exported = stmt.type == "export_statement"
        default = exported and _is_default_export(stmt)
        inner = stmt
        if exported:
            decl = stmt.child_by_field_name("declaration")
            value = stmt.child_by_field_name("value")
            if decl is not None:
                inner = decl
            elif value is not None:
                value = unwrap_parens(value)
                if value.type == "identifier":
                    name = node_text(value)
                else:
                    name = node_text(value.child_by_field_name("name")) or None
                yield Declaration(name, value, stmt, True, default)
                continue
            else:
                continue

        if inner.type in FUNCTION_TYPES or inner.type in CLASS_TYPES:
            name = node_text(inner.child_by_field_name("name")) or None
            yield Declaration(name, inner, stmt, exported, default)
        elif inner.type in ("lexical_declaration", "variable_declaration"):
            for declarator in inner.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if name_node is None or name_node.type != "identifier" or value is None:
                    continue
                yield Declaration(node_text(name_node), unwrap_parens(value), stmt, exported, default)


def exports(root: Node) -> tuple[str | None, set[str]]:
    """Return (default export name, named export names) using local binding names."""
    default_name: str | None = None
    named: set[str] = set()
    for stmt in root.named_children:
        if stmt.type != "export_statement" or stmt.child_by_field_name("source") is not None:
            continue
        default = _is_default_export(stmt)
        decl = stmt.child_by_field_name("declaration")
        value = unwrap_parens(stmt.child_by_field_name("value"))

        if decl is not None:
            if decl.type in ("lexical_declaration", "variable_declaration"):
                names = [
                    node_text(d.child_by_field_name("name"))
                    for d in decl.named_children if d.type == "variable_declarator"
                ]
            else:
                names = [node_text(decl.child_by_field_name("name"))]
            names = [n for n in names if n]
            if default and names:
                default_name = names[0]
            elif not default:
                named.update(names)
        elif value is not None and default:
            if value.type == "identifier":
                default_name = node_text(value)
            elif value.type in FUNCTION_TYPES or value.type in CLASS_TYPES:
                default_name = node_text(value.child_by_field_name("name")) or None

        for clause in stmt.named_children:
            if clause.type != "export_clause":
                continue
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                local = node_text(spec.child_by_field_name("name"))
                alias = node_text(spec.child_by_field_name("alias"))
                if alias == "default":
                    default_name = local
                elif local:
                    named.add(local)
    return default_name, named


def boundary_marker(root: Node) -> str | None:
    """The leading ``"use client"`` / ``"use server"`` directive, if any."""
    for child in root.named_children:
        if child.type in ("comment", "hash_bang_line"):
            continue
        if child.type == "expression_statement" and child.named_children:
            value = string_value(child.named_children[0])
            if value in DIRECTIVES:
                return value
        return None
    return None


def fallback_name(path: str) -> str:
    """File stem, or the directory name for ``index.*`` modules."""
    base = posixpath.basename(path)
    stem = base.split(".", 1)[0] or base
    if stem == "index":
        parent = posixpath.basename(posixpath.dirname(path))
        return parent or stem
    return stem


def jsx_tag_names(root: Node) -> set[str]:
    names: set[str] = set()
    for node in walk_tree(root):
        if node.type in ("jsx_opening_element", "jsx_self_closing_element"):
            name = node.child_by_field_name("name")
            if name is not None:
                names.add(node_text(name))
    return names


# ── Markup detection ─────────────────────────────────────────────────────────

def is_markup(node: Node | None) -> bool:
    node = unwrap_parens(node)
    if node is None:
        return False
    if node.type in MARKUP_TYPES:
        return True
    if node.type == "call_expression":
        return callee_name(node) == "createElement"
    if node.type == "ternary_expression":
        return (is_markup(node.child_by_field_name("consequence"))
                or is_markup(node.child_by_field_name("alternative")))
    if node.type == "binary_expression":
        return is_markup(node.child_by_field_name("right"))
    return False


def _returns_markup_statement(stmt: Node) -> bool:
    if stmt.type != "return_statement":
        return False
    values = [c for c in stmt.named_children if c.type != "comment"]
    return bool(values) and is_markup(values[0])


def _one_level_statements(stmt: Node) -> Iterator[Node]:
    """Statements one block below ``stmt`` (if/else, try/catch/finally, loop bodies)."""
    for child in stmt.named_children:
        if child.type == "statement_block":
            yield from child.named_children
        elif child.type == "return_statement":
            yield child
        elif child.type in _BLOCK_CLAUSES:
            for sub in child.named_children:
                if sub.type == "statement_block":
                    yield from sub.named_children
                elif sub.type == "return_statement":
                    yield sub


def returns_markup(fn: Node) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return is_markup(body)
    for stmt in body.named_children:
        if _returns_markup_statement(stmt):
            return True
        if any(_returns_markup_statement(inner) for inner in _one_level_statements(stmt)):
            return True
    return False


def _function_of(node: Node | None, depth: int = 0) -> Node | None:
    """The function behind a declaration, looking through wrappers like ``memo(...)``."""
    node = unwrap_parens(node)
    if node is None:
        return None
    if node.type in FUNCTION_TYPES:
        return node
    if node.type == "call_expression" and depth < 2:
        for arg in call_arguments(node):
            fn = _function_of(arg, depth + 1)
            if fn is not None:
                return fn
    return None


def _returns_function_or_class(fn: Node) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    wanted = FUNCTION_TYPES | CLASS_TYPES
    if body.type != "statement_block":
        return unwrap_parens(body).type in wanted
    for stmt in body.named_children:
        if stmt.type == "return_statement" and stmt.named_children:
            if unwrap_parens(stmt.named_children[0]).type in wanted:
                return True
    return False


def _extends_component(cls: Node) -> bool:
    for child in cls.children:
        if child.type != "class_heritage":
            continue
        for sub in child.named_children:
            if sub.type == "extends_clause":
                value = sub.child_by_field_name("value")
                if value is None and sub.named_children:
                    value = sub.named_children[0]
                return node_text(value) in COMPONENT_BASES
            if sub.type != "implements_clause":
                return node_text(sub) in COMPONENT_BASES
    return False


def _wraps_component(call: Node, depth: int = 0) -> bool:
    if callee_name(call) == "createContext":
        return False
    for arg in call_arguments(call):
        arg = unwrap_parens(arg)
        if arg.type in FUNCTION_TYPES or arg.type in CLASS_TYPES:
            return True
        if arg.type == "identifier" and node_text(arg)[:1].isupper():
            return True
    callee = call.child_by_field_name("function")
    if callee is not None and callee.type == "call_expression" and depth < 2:
        return _wraps_component(callee, depth + 1)
    return False


# ── Predicates ───────────────────────────────────────────────────────────────

def _export_rank(name: str | None, default: bool, exported: bool, root_exports: tuple[str | None, set[str]]) -> int:
    """0 for the default export, 1 for a named export, 2 for a local declaration."""
    default_name, named = root_exports
    if default or (name is not None and name == default_name):
        return 0
    if exported or name in named:
        return 1
    return 2


def class_component(root: Node) -> Match | None:
    found: list[tuple[Match, bool, bool]] = []
    for node in walk_tree(root):
        if node.type in CLASS_TYPES and _extends_component(node):
            name = node_text(node.child_by_field_name("name")) or None
            if name is None and node.parent is not None and node.parent.type == "variable_declarator":
                name = node_text(node.parent.child_by_field_name("name")) or None
            in_export = node.parent is not None and node.parent.type == "export_statement"
            found.append((Match(name, node), in_export and _is_default_export(node.parent), in_export))
    if not found:
        return None
    root_exports = exports(root)
    # min() keeps source order among equal ranks
    best = min(found, key=lambda f: _export_rank(f[0].name, f[1], f[2], root_exports))
    return best[0]


def function_component(root: Node) -> Match | None:
    """The exported markup-returning function; the first one when none is exported."""
    found: list[tuple[Declaration, Node]] = []
    for decl in top_level_declarations(root):
        fn = _function_of(decl.node)
        if fn is not None and returns_markup(fn):
            found.append((decl, fn))
    if not found:
        return None
    root_exports = exports(root)
    decl, fn = min(found, key=lambda f: _export_rank(f[0].name, f[0].default, f[0].exported, root_exports))
    return Match(decl.name, fn)


def higher_order_component(root: Node) -> Match | None:
    default_name, _ = exports(root)
    tags: set[str] | None = None
    for decl in top_level_declarations(root):
        node = decl.node
        if node.type == "call_expression" and _wraps_component(node):
            if decl.default and decl.name is None:
                return Match(None, node)
            if decl.name is None:
                continue
            if decl.name[:1].isupper() or decl.name == default_name:
                return Match(decl.name, node)
            if tags is None:
                tags = jsx_tag_names(root)
            if decl.name in tags:
                return Match(decl.name, node)
        elif node.type in FUNCTION_TYPES and decl.name and decl.name.startswith("with"):
            if _returns_function_or_class(node):
                return Match(decl.name, node)
    return None


def custom_hook(root: Node) -> Match | None:
    default_name, named = exports(root)
    for decl in top_level_declarations(root):
        if not decl.name or not HOOK_NAME.match(decl.name):
            continue
        if not (decl.exported or decl.name in named or decl.name == default_name):
            continue
        fn = decl.node if decl.node.type in FUNCTION_TYPES else None
        if fn is not None and not returns_markup(fn):
            return Match(decl.name, fn)
    return None


def context_provider(root: Node) -> Match | None:
    for node in walk_tree(root):
        if node.type == "call_expression" and callee_name(node) == "createContext":
            parent = node.parent
            while parent is not None and parent.type in ("parenthesized_expression", "as_expression"):
                parent = parent.parent
            if parent is not None and parent.type == "variable_declarator":
                return Match(node_text(parent.child_by_field_name("name")) or None, node)
            return Match(None, node)
    return None


PREDICATES: tuple[tuple[ComponentKind, Callable[[Node], Match | None]], ...] = (
    (ComponentKind.CLASS_COMPONENT, class_component),
    (ComponentKind.FUNCTION_COMPONENT, function_component),
    (ComponentKind.HIGHER_ORDER_COMPONENT, higher_order_component),
    (ComponentKind.CUSTOM_HOOK, custom_hook),
    (ComponentKind.CONTEXT_PROVIDER, context_provider),
)


def classify(root: Node | None, path: str) -> Classification:
    """Classify a module. Never raises; malformed trees are UNKNOWN."""
    fallback = fallback_name(path)
    if root is None or root.has_error:
        return Classification(kind=ComponentKind.UNKNOWN, name=fallback)

    try:
        kind, match = ComponentKind.UNKNOWN, None
        for candidate, predicate in PREDICATES:
            match = predicate(root)
            if match is not None:
                kind = candidate
                break

        default_name, named = exports(root)
        declaration = match.name if match else None
        name = default_name or declaration or fallback

        if default_name and name == default_name:
            export_type = "default"
        elif name in named or (declaration == name and _declared_exported(root, name)):
            export_type = "named"
        else:
            export_type = "none"

        return Classification(
            kind=kind,
            name=name,
            declaration=declaration,
            node=match.node if match else None,
            exported=export_type != "none",
            export_type=export_type,
            boundary=boundary_marker(root),
        )
    except Exception:
        log.warning("Classification failed for %s", path, exc_info=True)
        return Classification(kind=ComponentKind.UNKNOWN, name=fallback)


def _declared_exported(root: Node, name: str) -> bool:
    return any(d.name == name and d.exported for d in top_level_declarations(root))
