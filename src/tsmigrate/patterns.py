"""
Rendering and behaviour pattern detection.

Each detector is an independent boolean test over the syntax tree; the
result is a set of PatternTags, so detection is order independent and
running it twice gives the same answer.
"""

from typing import Callable

from tree_sitter import Node

from .classify import MARKUP_TYPES, callee_name
from .extract import EFFECT_HOOKS, hook_name
from .models import PatternTag
from .parse import node_text, unwrap_parens, walk_tree

FORM_ELEMENTS = frozenset({"form", "input", "select", "textarea"})
FORM_HANDLERS = frozenset({"onSubmit", "onChange"})
HTTP_CLIENTS = frozenset({"axios", "http", "api", "client", "request", "superagent", "ky"})
HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "request", "head"})
DATA_LIFECYCLE = frozenset({"componentDidMount", "componentDidUpdate"})


def inside_markup(node: Node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type in MARKUP_TYPES or parent.type == "jsx_expression":
            return True
        if parent.type in ("statement_block", "class_body", "program"):
            return False
        parent = parent.parent
    return False


def _element_attributes(root: Node) -> list[tuple[str, set[str]]]:
    """(element name, attribute names) for every JSX opening / self-closing tag."""
    elements: list[tuple[str, set[str]]] = []
    for node in walk_tree(root):
        if node.type not in ("jsx_opening_element", "jsx_self_closing_element"):
            continue
        attrs: set[str] = set()
        for attr in node.named_children:
            if attr.type == "jsx_attribute" and attr.named_children:
                attrs.add(node_text(attr.named_children[0]))
        elements.append((node_text(node.child_by_field_name("name")), attrs))
    return elements


def conditional_rendering(root: Node) -> bool:
    for node in walk_tree(root):
        if node.type == "ternary_expression" and inside_markup(node):
            return True
        if (node.type == "binary_expression"
                and node_text(node.child_by_field_name("operator")) == "&&"
                and inside_markup(node)):
            return True
    return False


def list_rendering(root: Node) -> bool:
    for node in walk_tree(root):
        if node.type == "call_expression" and inside_markup(node):
            fn = node.child_by_field_name("function")
            if fn is not None and fn.type == "member_expression" and node_text(fn.child_by_field_name("property")) == "map":
                return True
    return False


def _fetches(body: Node) -> bool:
    for node in walk_tree(body):
        if node.type == "await_expression":
            return True
        if node.type != "call_expression":
            continue
        fn = node.child_by_field_name("function")
        if fn is None:
            continue
        if fn.type == "identifier" and node_text(fn) == "fetch":
            return True
        if fn.type == "member_expression":
            prop = node_text(fn.child_by_field_name("property"))
            obj = node_text(fn.child_by_field_name("object"))
            if prop == "then":
                return True
            if obj in HTTP_CLIENTS and prop in HTTP_METHODS:
                return True
        if fn.type == "identifier" and node_text(fn) in HTTP_CLIENTS:
            return True
    return False


def data_fetching(root: Node) -> bool:
    for node in walk_tree(root):
        if node.type == "call_expression" and hook_name(node) in EFFECT_HOOKS:
            args = node.child_by_field_name("arguments")
            callback = unwrap_parens(args.named_children[0]) if args is not None and args.named_children else None
            if callback is not None and _fetches(callback):
                return True
        elif node.type == "method_definition" and node_text(node.child_by_field_name("name")) in DATA_LIFECYCLE:
            body = node.child_by_field_name("body")
            if body is not None and _fetches(body):
                return True
    return False


def form_handling(root: Node) -> bool:
    return any(
        name in FORM_ELEMENTS and attrs & FORM_HANDLERS
        for name, attrs in _element_attributes(root)
    )


def controlled_input(root: Node) -> bool:
    return any(
        "onChange" in attrs and ("value" in attrs or "checked" in attrs)
        for _, attrs in _element_attributes(root)
    )


def composition(root: Node) -> bool:
    for node in walk_tree(root):
        if node.type == "jsx_expression" and node.named_children:
            text = node_text(unwrap_parens(node.named_children[0]))
            if text in ("children", "props.children", "this.props.children"):
                return True
    return False


def memoization(root: Node) -> bool:
    return any(
        node.type == "call_expression" and callee_name(node) == "memo"
        for node in walk_tree(root)
    )


DETECTORS: dict[PatternTag, Callable[[Node], bool]] = {
    PatternTag.CONDITIONAL_RENDERING: conditional_rendering,
    PatternTag.LIST_RENDERING: list_rendering,
    PatternTag.DATA_FETCHING: data_fetching,
    PatternTag.FORM_HANDLING: form_handling,
    PatternTag.CONTROLLED_INPUT: controlled_input,
    PatternTag.COMPOSITION: composition,
    PatternTag.MEMOIZATION: memoization,
}


def detect_patterns(root: Node | None) -> set[PatternTag]:
    if root is None:
        return set()
    return {tag for tag, detector in DETECTORS.items() if detector(root)}
