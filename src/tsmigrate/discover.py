"""File discovery: walk the component directories, respect .gitignore, return (path, language) pairs."""

import logging
from pathlib import Path

import pathspec

from .config import MigrationConfig
from .parse import language_for_path

log = logging.getLogger(__name__)


def _load_gitignore_spec(root: Path) -> pathspec.PathSpec | None:
    gitignore = root / ".gitignore"
    if gitignore.exists():
        patterns = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
        return pathspec.PathSpec.from_lines("gitwildmatch", patterns)
    return None


def is_excluded_name(name: str, markers: list[str]) -> bool:
    """Test, spec and story files are never migrated."""
    return any(marker in name for marker in markers)


def discover_sources(config: MigrationConfig) -> list[tuple[str, str]]:
    """
    Return (relative_path, language) for every component source under the
    configured source directories.

    Respects .gitignore, config.exclude_dirs and config.exclude_markers.
    Paths are relative to project_root and use forward slashes.
    """
    root = Path(config.project_root).resolve()
    gitignore_spec = _load_gitignore_spec(root)
    exclude_dirs = set(config.exclude_dirs)
    extensions = {ext.lower() for ext in config.extensions}

    results: list[tuple[str, str]] = []
    seen: set[str] = set()

    for source_dir in config.source_dirs:
        base = root / source_dir
        if not base.is_dir():
            log.warning("Source directory not found: %s", base)
            continue

        for path in sorted(base.rglob("*")):
            if not path.is_file():
                continue

            rel = path.relative_to(root)
            rel_str = rel.as_posix()
            if rel_str in seen:
                continue

            # skip excluded directories (check every part of the path)
            if any(part in exclude_dirs for part in rel.parts[:-1]):
                continue

            if gitignore_spec and gitignore_spec.match_file(rel_str):
                continue

            if path.suffix.lower() not in extensions or is_excluded_name(path.name, config.exclude_markers):
                continue

            lang = language_for_path(rel_str)
            if lang is None:
                continue

            seen.add(rel_str)
            results.append((rel_str, lang))

    log.info("Discovered %d source files under %s", len(results), root)
    return results
