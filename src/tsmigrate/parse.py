"""Tree-sitter parsing of JavaScript / TypeScript sources into SourceUnits."""

import hashlib
import logging
import posixpath
import threading
from pathlib import Path

from tree_sitter import Node, Parser, Tree
from tree_sitter_language_pack import get_language

from .errors import SourceLoadError
from .models import SourceUnit

log = logging.getLogger(__name__)

# Parser instances are not thread-safe: one set per worker thread
_local = threading.local()

EXT_TO_LANG: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}


def _get_parser(language: str) -> Parser:
    parsers = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}
    if language not in parsers:
        parsers[language] = Parser(get_language(language))
    return parsers[language]


def content_hash(source: bytes) -> str:
    return hashlib.sha256(source).hexdigest()


def language_for_path(path: str) -> str | None:
    return EXT_TO_LANG.get(posixpath.splitext(path)[1].lower())


def parse_source(source: bytes, language: str) -> Tree | None:
    try:
        return _get_parser(language).parse(source)
    except Exception as e:
        log.warning("Parse error (%s): %s", language, e)
        return None


def unit_from_source(path: str, source: bytes, language: str | None = None) -> SourceUnit:
    """Build a SourceUnit from in-memory bytes; the tree is None if parsing failed."""
    language = language or language_for_path(path) or "javascript"
    return SourceUnit(
        path=path,
        language=language,
        source=source,
        tree=parse_source(source, language),
        content_hash=content_hash(source),
    )


def load_unit(path: str, project_root: str, language: str | None = None) -> SourceUnit:
    """Read and parse a project file. Raises SourceLoadError if unreadable."""
    full_path = Path(project_root) / path
    try:
        source = full_path.read_bytes()
    except OSError as e:
        raise SourceLoadError(f"Cannot read {full_path}: {e}") from e
    return unit_from_source(path, source, language)


def read_unit(path: str, project_root: str, language: str | None = None) -> SourceUnit | None:
    """Like load_unit, but logs and returns None on unreadable input."""
    try:
        return load_unit(path, project_root, language)
    except SourceLoadError as e:
        log.warning("%s", e)
        return None


def walk_tree(node: Node):
    """Depth-first generator over all nodes in a tree."""
    yield node
    for child in node.children:
        yield from walk_tree(child)


def node_text(node: Node | None) -> str:
    if node is None or not node.text:
        return ""
    return node.text.decode("utf-8", errors="replace")


def unwrap_parens(node: Node | None) -> Node | None:
    while node is not None and node.type == "parenthesized_expression" and node.named_children:
        node = node.named_children[0]
    return node


def string_value(node: Node | None) -> str | None:
    """The contents of a string literal node, without quotes."""
    if node is None or node.type != "string":
        return None
    text = node_text(node)
    return text[1:-1] if len(text) >= 2 else ""
