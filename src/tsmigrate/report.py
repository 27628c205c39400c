"""Markdown relationship report: per-category tables plus a mermaid dependency graph."""

import logging
from collections import defaultdict
from pathlib import Path

from .models import Category, ComplexityTier, ComponentProfile, Priority

log = logging.getLogger(__name__)

PRIORITY_MARKERS: dict[Priority, str] = {
    Priority.HIGHEST: "🔴",
    Priority.HIGH: "🟠",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
    Priority.MIGRATED: "✅",
}

_TIER_LABELS: dict[ComplexityTier, str] = {
    ComplexityTier.LOW: "Low",
    ComplexityTier.MEDIUM: "Medium",
    ComplexityTier.HIGH: "High",
    ComplexityTier.VERY_HIGH: "Very High",
}


def _names(paths: list[str], names: dict[str, str]) -> str:
    return ", ".join(names.get(p, p) for p in paths) or "-"


def render_relationships(profiles: list[ComponentProfile], cycles: list[list[str]]) -> str:
    names = {p.path: p.name for p in profiles}
    lines = [
        "# Component Relationships",
        "",
        f"{len(profiles)} components analyzed.",
        "",
    ]

    by_category: dict[Category, list[ComponentProfile]] = defaultdict(list)
    for p in profiles:
        by_category[p.category].append(p)

    for category in Category:
        members = by_category.get(category)
        if not members:
            continue
        lines += [f"## {category.value.title()} Components", ""]
        for tier in ComplexityTier:
            in_tier = sorted((p for p in members if p.tier == tier), key=lambda p: (p.name, p.path))
            if not in_tier:
                continue
            lines += [
                f"### {_TIER_LABELS[tier]} Complexity",
                "",
                "| Component | Dependencies | Used By | Migration Priority |",
                "|---|---|---|---|",
            ]
            for p in in_tier:
                priority = p.migration_priority.value if p.migration_priority else "-"
                lines.append(
                    f"| {p.name} | {_names(p.internal_dependencies, names)} "
                    f"| {_names(p.depended_on_by, names)} | {priority} |"
                )
            lines.append("")

    ids = {p.path: f"C{i}" for i, p in enumerate(profiles)}
    lines += ["## Dependency Graph", "", "```mermaid", "graph TD"]
    for p in profiles:
        marker = PRIORITY_MARKERS.get(p.migration_priority, "") if p.migration_priority else ""
        label = f"{marker} {p.name}".strip().replace('"', "'")
        lines.append(f'  {ids[p.path]}["{label}"]')
    for p in profiles:
        for dep in p.internal_dependencies:
            if dep in ids:
                lines.append(f"  {ids[p.path]} --> {ids[dep]}")
    lines += ["```", "", "Legend: " + "  ".join(f"{m} {pr.value}" for pr, m in PRIORITY_MARKERS.items()), ""]

    if cycles:
        lines += ["## Import Cycles", ""]
        for cycle in cycles:
            lines.append("- " + " ↔ ".join(names.get(p, p) for p in cycle))
        lines.append("")

    return "\n".join(lines)


def write_relationships(path: str | Path, profiles: list[ComponentProfile], cycles: list[list[str]]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_relationships(profiles, cycles), encoding="utf-8")
    log.info("Wrote relationship report to %s", path)
