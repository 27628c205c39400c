"""
Planning pipeline: discover → parse → analyze → resolve → graph → prioritize → batch.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .analyze import analyze_file
from .artifacts import write_inventory, write_roadmap
from .config import MigrationConfig
from .discover import discover_sources
from .errors import ConfigError
from .graph import apply_usage, build_graph, detect_cycles
from .models import ComponentProfile, DependencyEdge, MigrationBatch
from .planner import assign_priority, plan_batches
from .report import write_relationships
from .resolve import resolve_edges
from .store import MigrationStore

log = logging.getLogger(__name__)


@dataclass
class PlanResult:
    profiles: list[ComponentProfile] = field(default_factory=list)
    edges: list[DependencyEdge] = field(default_factory=list)
    batches: list[MigrationBatch] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    errors: int = 0


def store_path(config: MigrationConfig) -> Path:
    return config.root_path(config.checkpoint_dir, "migration.duckdb")


def build_plan(config: MigrationConfig) -> PlanResult:
    root = Path(config.project_root)
    if not root.is_dir():
        raise ConfigError(f"Project directory not found: {root}")
    if not any((root / d).is_dir() for d in config.source_dirs):
        raise ConfigError(f"No source directory found under {root}: {', '.join(config.source_dirs)}")

    result = PlanResult()
    for rel_path, language in discover_sources(config):
        profile = analyze_file(rel_path, config, language)
        if profile is None:
            result.errors += 1
            continue
        result.profiles.append(profile)

    result.edges = resolve_edges(result.profiles, config.alias_table(), config.extensions)
    g = build_graph(result.profiles, result.edges)
    apply_usage(g, result.profiles, config.critical_threshold)
    result.cycles = detect_cycles(g)

    for profile in result.profiles:
        profile.migration_priority = assign_priority(profile)

    result.batches = plan_batches(result.profiles)
    return result


def run_plan(config: MigrationConfig) -> dict:
    """
    Analyze the corpus and write the inventory, roadmap and relationship report.

    Returns a stats dict.
    """
    result = build_plan(config)

    write_inventory(config.root_path(config.inventory_file), result.profiles)
    write_roadmap(config.root_path(config.roadmap_file), result.batches)
    write_relationships(config.root_path(config.relationships_file), result.profiles, result.cycles)

    db = store_path(config)
    db.parent.mkdir(parents=True, exist_ok=True)
    store = MigrationStore(str(db))
    try:
        store.set_meta("last_plan_at", datetime.now(timezone.utc).isoformat())
        store.set_meta("last_plan_components", str(len(result.profiles)))
    finally:
        store.close()

    by_kind: dict[str, int] = {}
    by_priority: dict[str, int] = {}
    for p in result.profiles:
        by_kind[p.kind.value] = by_kind.get(p.kind.value, 0) + 1
        if p.migration_priority:
            by_priority[p.migration_priority.value] = by_priority.get(p.migration_priority.value, 0) + 1

    return {
        "components": len(result.profiles),
        "edges": sum(1 for e in result.edges if e.internal),
        "cycles": len(result.cycles),
        "errors": result.errors,
        "by_kind": by_kind,
        "by_priority": by_priority,
        "batches": [(b.id, b.name, b.component_count) for b in result.batches],
    }
