"""Migration settings: defaults, then ``tsmigrate.json`` at the project root, then CLI flags."""

import json
import logging
import os
import posixpath
from dataclasses import dataclass, field, fields
from pathlib import Path

from .aliases import DEFAULT_ALIASES, AliasTable
from .errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_FILENAME = "tsmigrate.json"


@dataclass
class Indicator:
    weight: float
    thresholds: tuple[float, float, float] | None = None  # None → boolean indicator
    value: float = 0.0                                    # boolean indicators only


def default_indicators() -> dict[str, Indicator]:
    return {
        "prop_count": Indicator(1.0, (3, 6, 10)),
        "optional_props": Indicator(0.7, (2, 5, 8)),
        "complex_props": Indicator(1.5, (1, 3, 5)),
        "children_usage": Indicator(0.5, (0, 1, 2)),
        "state_count": Indicator(1.0, (2, 4, 7)),
        "effect_count": Indicator(1.2, (1, 3, 5)),
        "callback_count": Indicator(1.0, (2, 5, 8)),
        "ref_count": Indicator(0.8, (1, 3, 5)),
        "complex_logic": Indicator(1.5, (2, 5, 8)),
        "external_deps": Indicator(1.3, (3, 7, 12)),
        "class_component": Indicator(1.5, value=2),
        "hoc_usage": Indicator(1.8, value=2),
    }


@dataclass
class ScoringConfig:
    indicators: dict[str, Indicator] = field(default_factory=default_indicators)
    tier_cut_points: tuple[float, float, float] = (5, 10, 15)


def _default_workers() -> int:
    return max(1, (os.cpu_count() or 2) - 1)


@dataclass
class MigrationConfig:
    project_root: str
    source_dirs: list[str] = field(default_factory=lambda: ["components"])
    target_dir: str = "src/components"
    checkpoint_dir: str = ".migration-checkpoints"
    log_dir: str = "logs"
    inventory_file: str = "component-inventory.json"
    roadmap_file: str = "migration-roadmap.json"
    relationships_file: str = "component-relationships.md"
    extensions: list[str] = field(default_factory=lambda: [".js", ".jsx", ".ts", ".tsx"])
    exclude_dirs: list[str] = field(default_factory=lambda: [
        "node_modules", ".git", ".next", "dist", "build", "out", "coverage",
        "vendor", "__tests__", "__mocks__", ".migration-checkpoints",
    ])
    exclude_markers: list[str] = field(default_factory=lambda: [".test.", ".spec.", ".stories."])
    aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    critical_threshold: int = 4
    workers: int = field(default_factory=_default_workers)
    shard_size: int = 10
    memory_budget_mb: int = 8192
    memory_high_water: float = 85.0
    memory_critical: float = 90.0
    cooldown_seconds: float = 5.0
    interface_mode: str = "inline"      # "inline" | "external"
    verify: bool = False
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def alias_table(self) -> AliasTable:
        return AliasTable(self.aliases)

    def root_path(self, *parts: str) -> Path:
        return Path(self.project_root).joinpath(*parts)

    def target_path_for(self, rel_path: str, has_markup: bool = True) -> str:
        """
        Map a source path to its TypeScript target.

        components/ui/Button.jsx → src/components/ui/Button.tsx
        Plain ``.js`` modules without markup become ``.ts``.
        """
        rel_path = rel_path.replace("\\", "/")
        tail = rel_path
        for source_dir in sorted(self.source_dirs, key=len, reverse=True):
            prefix = source_dir.rstrip("/") + "/"
            if rel_path.startswith(prefix):
                tail = rel_path[len(prefix):]
                break
        stem, ext = posixpath.splitext(tail)
        if ext == ".jsx" or (ext == ".js" and has_markup):
            ext = ".tsx"
        elif ext == ".js":
            ext = ".ts"
        return posixpath.join(self.target_dir, stem + ext)

    def existing_target(self, rel_path: str) -> str | None:
        """Return the target path if a migrated file is already present."""
        for has_markup in (True, False):
            target = self.target_path_for(rel_path, has_markup)
            if self.root_path(target).is_file():
                return target
        return None


def _coerce_scoring(raw: dict) -> ScoringConfig:
    scoring = ScoringConfig()
    for name, spec in raw.get("indicators", {}).items():
        if name not in scoring.indicators:
            raise ConfigError(f"Unknown complexity indicator: {name}")
        current = scoring.indicators[name]
        thresholds = spec.get("thresholds", current.thresholds)
        if thresholds is not None:
            if len(thresholds) != 3:
                raise ConfigError(f"Indicator {name} needs exactly three thresholds")
            thresholds = tuple(thresholds)
        scoring.indicators[name] = Indicator(
            weight=float(spec.get("weight", current.weight)),
            thresholds=thresholds,
            value=float(spec.get("value", current.value)),
        )
    if "tier_cut_points" in raw:
        cuts = raw["tier_cut_points"]
        if len(cuts) != 3 or list(cuts) != sorted(cuts):
            raise ConfigError("tier_cut_points must be three ascending numbers")
        scoring.tier_cut_points = tuple(cuts)
    return scoring


def load_config(project_root: str, config_path: str | None = None) -> MigrationConfig:
    """
    Build a MigrationConfig for a project.

    Reads ``tsmigrate.json`` from the project root (or ``config_path``) when
    present; keys mirror the MigrationConfig field names.
    """
    root = str(Path(project_root).resolve())
    config = MigrationConfig(project_root=root)

    path = Path(config_path) if config_path else Path(root) / CONFIG_FILENAME
    if not path.exists():
        if config_path:
            raise ConfigError(f"Config file not found: {path}")
        return config

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    known = {f.name for f in fields(MigrationConfig)} - {"project_root"}
    for key, value in raw.items():
        if key not in known:
            raise ConfigError(f"Unknown config key in {path.name}: {key}")
        if key == "scoring":
            config.scoring = _coerce_scoring(value)
        elif key == "interface_mode" and value not in ("inline", "external"):
            raise ConfigError(f"interface_mode must be 'inline' or 'external', got {value!r}")
        else:
            setattr(config, key, value)

    log.debug("Loaded config from %s", path)
    return config
