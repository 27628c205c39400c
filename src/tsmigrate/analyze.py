"""Per-unit analysis: classify → extract → detect patterns → infer types → score."""

import logging

from tree_sitter import Node

from .classify import MARKUP_TYPES, callee_name, classify
from .complexity import score_profile
from .config import MigrationConfig
from .extract import extract
from .models import ComponentProfile, SourceUnit
from .parse import read_unit, walk_tree
from .patterns import detect_patterns
from .planner import categorize
from .synthesize import infer_prop_type, infer_state_type

log = logging.getLogger(__name__)


def has_markup(root: Node | None) -> bool:
    if root is None:
        return False
    for node in walk_tree(root):
        if node.type in MARKUP_TYPES:
            return True
        if node.type == "call_expression" and callee_name(node) == "createElement":
            return True
    return False


def analyze_unit(unit: SourceUnit, config: MigrationConfig) -> ComponentProfile:
    """Build the full profile of one source unit. Usage and priority are filled in later."""
    root = unit.tree.root_node if unit.tree is not None else None
    classification = classify(root, unit.path)
    inventory = extract(unit.path, root, classification, config.alias_table())

    profile = ComponentProfile(
        path=unit.path,
        name=classification.name,
        kind=classification.kind,
        language=unit.language,
        exported=classification.exported,
        export_type=classification.export_type,
        boundary=classification.boundary,
        props=inventory.props,
        state=inventory.state,
        effects=inventory.effects,
        refs=inventory.refs,
        contexts=inventory.contexts,
        callbacks=inventory.callbacks,
        hooks=inventory.hooks,
        imports=inventory.imports,
        patterns=detect_patterns(root),
        has_markup=has_markup(root),
        parse_error=root is None or root.has_error,
        file_size=len(unit.source),
        content_hash=unit.content_hash,
    )

    for prop in profile.props:
        if not (prop.is_whole or prop.is_rest):
            prop.inferred_type = infer_prop_type(prop)
    for state in profile.state:
        state.inferred_type = infer_state_type(state)

    profile.complexity = score_profile(profile, config.scoring)
    profile.category = categorize(profile)
    profile.migrated = unit.language != "javascript" or config.existing_target(unit.path) is not None
    return profile


def analyze_file(rel_path: str, config: MigrationConfig, language: str | None = None) -> ComponentProfile | None:
    unit = read_unit(rel_path, config.project_root, language)
    if unit is None:
        return None
    return analyze_unit(unit, config)
