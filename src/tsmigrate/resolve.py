"""
Cross-file import resolution.

Turns the internal import specifiers of every profile into DependencyEdges
by probing candidate paths against the corpus index.
"""

import logging
from typing import Iterable

from .aliases import AliasTable
from .models import ComponentProfile, DependencyEdge

log = logging.getLogger(__name__)


def candidate_paths(base: str, extensions: list[str]) -> list[str]:
    """
    Candidate files for an extensionless import, in lookup order.

    "components/ui/Button" → ["components/ui/Button",
                              "components/ui/Button.js", ...,
                              "components/ui/Button/index.js", ...]
    """
    candidates = [base]
    candidates.extend(base + ext for ext in extensions)
    candidates.extend(f"{base}/index{ext}" for ext in extensions)
    return candidates


class ImportResolver:
    def __init__(self, corpus: Iterable[str], aliases: AliasTable, extensions: list[str]) -> None:
        self._index = set(corpus)
        self._aliases = aliases
        self._extensions = extensions

    def resolve(self, specifier: str, importer: str) -> str | None:
        base = self._aliases.expand(specifier, importer)
        if base is None:
            return None
        for candidate in candidate_paths(base, self._extensions):
            if candidate in self._index:
                return candidate
        return None


def resolve_edges(
    profiles: list[ComponentProfile],
    aliases: AliasTable,
    extensions: list[str],
) -> list[DependencyEdge]:
    """
    Resolve every import of every profile.

    Internal imports that resolve to a corpus file become resolved edges;
    unresolvable internal imports are dropped. External imports are kept as
    unresolved, non-internal edges keyed by their specifier.
    """
    resolver = ImportResolver((p.path for p in profiles), aliases, extensions)
    edges: list[DependencyEdge] = []
    seen: set[tuple[str, str]] = set()
    internal_total = 0
    dropped = 0

    for profile in profiles:
        for imp in profile.imports:
            if not imp.internal:
                target, internal, resolved = imp.specifier, False, False
            else:
                internal_total += 1
                target = resolver.resolve(imp.specifier, profile.path)
                if target is None:
                    dropped += 1
                    log.debug("Unresolved import %r in %s", imp.specifier, profile.path)
                    continue
                internal, resolved = True, True

            key = (profile.path, target)
            if key in seen:
                continue
            seen.add(key)
            edges.append(DependencyEdge(source=profile.path, target=target, internal=internal, resolved=resolved))

    if internal_total:
        log.info(
            "Resolved %d/%d internal imports (%.0f%%)",
            internal_total - dropped, internal_total,
            100 * (internal_total - dropped) / internal_total,
        )
    return edges
