"""JSON artifacts: the component inventory, the migration roadmap and the failure report."""

import json
import logging
from pathlib import Path

from .errors import RoadmapError
from .models import ComponentProfile, LegacyType, MigrationBatch, MigrationResult, PropDescriptor

log = logging.getLogger(__name__)


def _legacy_to_dict(legacy: LegacyType) -> dict:
    data: dict = {"kind": legacy.kind, "required": legacy.required}
    if legacy.args:
        data["args"] = [_legacy_to_dict(a) for a in legacy.args]
    if legacy.literals:
        data["literals"] = legacy.literals
    if legacy.fields:
        data["fields"] = {k: _legacy_to_dict(v) for k, v in legacy.fields.items()}
    if legacy.ref:
        data["ref"] = legacy.ref
    return data


def _prop_to_dict(prop: PropDescriptor) -> dict:
    data: dict = {
        "name": prop.name,
        "optional": prop.optional,
        "type": prop.inferred_type,
        "origin": prop.origin,
    }
    if prop.default_literal is not None:
        data["defaultValue"] = prop.default_literal
    if prop.legacy is not None:
        data["legacyType"] = _legacy_to_dict(prop.legacy)
    return data


def profile_to_dict(profile: ComponentProfile) -> dict:
    usage = profile.usage_score
    complexity = profile.complexity
    return {
        "name": profile.name,
        "path": profile.path,
        "kind": profile.kind.value,
        "language": profile.language,
        "exported": profile.exported,
        "exportType": profile.export_type,
        "boundary": profile.boundary,
        "category": profile.category.value,
        "props": [_prop_to_dict(p) for p in profile.props],
        "state": [
            {"name": s.name, "setter": s.setter_name, "type": s.inferred_type,
             "defaultValue": s.default_literal, "hook": s.hook}
            for s in profile.state
        ],
        "effects": [
            {"hook": e.hook, "trigger": e.trigger, "dependencies": e.dependencies, "hasCleanup": e.has_cleanup}
            for e in profile.effects
        ],
        "refs": [{"name": r.name, "initialValue": r.initial_literal} for r in profile.refs],
        "contexts": [{"context": c.context, "variable": c.variable} for c in profile.contexts],
        "callbacks": [
            {"hook": c.hook, "name": c.name, "dependencies": c.dependencies} for c in profile.callbacks
        ],
        "customHooks": [{"name": h.name, "source": h.source, "count": h.count} for h in profile.hooks],
        "imports": [
            {"specifier": i.specifier, "names": i.names, "internal": i.internal} for i in profile.imports
        ],
        "patterns": sorted(tag.value for tag in profile.patterns),
        "complexity": complexity.raw if complexity else 0,
        "complexityLevel": profile.tier.value,
        "complexityFactors": complexity.contributions if complexity else {},
        "internalDependencies": profile.internal_dependencies,
        "externalDependencies": profile.external_dependencies,
        "dependedOnBy": profile.depended_on_by,
        "usageScore": {
            "directUsage": usage.direct_usage,
            "weightedScore": usage.weighted_score,
            "isCritical": usage.is_critical,
        } if usage else None,
        "migrationPriority": profile.migration_priority.value if profile.migration_priority else None,
        "migrated": profile.migrated,
        "parseError": profile.parse_error,
        "fileSize": profile.file_size,
    }


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def write_inventory(path: str | Path, profiles: list[ComponentProfile]) -> None:
    _write_json(Path(path), [profile_to_dict(p) for p in profiles])
    log.info("Wrote inventory of %d components to %s", len(profiles), path)


def write_roadmap(path: str | Path, batches: list[MigrationBatch]) -> None:
    _write_json(Path(path), [b.to_dict() for b in batches])
    log.info("Wrote roadmap with %d batches to %s", len(batches), path)


def load_roadmap(path: str | Path) -> list[MigrationBatch]:
    path = Path(path)
    if not path.exists():
        raise RoadmapError(f"Roadmap not found: {path} (run 'tsmigrate plan' first)")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return [MigrationBatch.from_dict(b) for b in raw]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise RoadmapError(f"Invalid roadmap {path}: {e}") from e


def write_failure_report(path: str | Path, batch: MigrationBatch, failures: list[MigrationResult]) -> None:
    """One entry per failed item: file path, stage and error text."""
    paths = {i: c.path for i, c in enumerate(batch.components)}
    _write_json(Path(path), [
        {
            "index": r.index,
            "name": r.name,
            "path": paths.get(r.index),
            "stage": r.stage,
            "error": r.error,
        }
        for r in failures
    ])
    log.info("Wrote failure report (%d failures) to %s", len(failures), path)
