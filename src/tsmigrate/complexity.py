"""
Complexity scoring.

Every indicator counts something in the component's inventory, maps the
count to a bucket (0-3) through three ascending thresholds and multiplies
by its weight. Boolean indicators (class component, HOC) contribute a fixed
value times their weight. The raw score is the sum; tiers are cut from it.
"""

import logging

from .config import ScoringConfig
from .models import ComplexityScore, ComplexityTier, ComponentKind, ComponentProfile, PatternTag

log = logging.getLogger(__name__)

# Patterns that count as "complex logic"
COMPLEX_LOGIC_PATTERNS = frozenset({
    PatternTag.CONDITIONAL_RENDERING,
    PatternTag.LIST_RENDERING,
    PatternTag.DATA_FETCHING,
    PatternTag.FORM_HANDLING,
    PatternTag.CONTROLLED_INPUT,
})

COMPLEX_LEGACY_KINDS = frozenset({
    "object", "array", "func", "shape", "exact", "oneOf", "oneOfType", "arrayOf", "objectOf",
})
_COMPLEX_TYPE_MARKERS = ("Record<", "[]", "=>", "|", "{", "Array<", "object")


def is_complex_prop(prop) -> bool:
    if prop.legacy is not None and prop.legacy.kind in COMPLEX_LEGACY_KINDS:
        return True
    declared = prop.declared_type or prop.inferred_type or ""
    return any(marker in declared for marker in _COMPLEX_TYPE_MARKERS)


def bucket(count: float, thresholds: tuple[float, float, float]) -> int:
    low, mid, high = thresholds
    if count <= low:
        return 0
    if count <= mid:
        return 1
    if count <= high:
        return 2
    return 3


def tier_for(raw: float, cut_points: tuple[float, float, float]) -> ComplexityTier:
    low, medium, high = cut_points
    if raw < low:
        return ComplexityTier.LOW
    if raw < medium:
        return ComplexityTier.MEDIUM
    if raw < high:
        return ComplexityTier.HIGH
    return ComplexityTier.VERY_HIGH


def indicator_counts(profile: ComponentProfile) -> dict[str, int]:
    props = [p for p in profile.props if not p.is_whole]
    children = int(any(p.name == "children" for p in props))
    children += int(PatternTag.COMPOSITION in profile.patterns)
    return {
        "prop_count": len(props),
        "optional_props": sum(1 for p in props if p.optional),
        "complex_props": sum(1 for p in props if is_complex_prop(p)),
        "children_usage": children,
        "state_count": len(profile.state),
        "effect_count": len(profile.effects),
        "callback_count": len(profile.callbacks),
        "ref_count": len(profile.refs),
        "complex_logic": len(profile.patterns & COMPLEX_LOGIC_PATTERNS),
        "external_deps": len(profile.external_dependencies),
        "class_component": int(profile.kind == ComponentKind.CLASS_COMPONENT),
        "hoc_usage": int(profile.kind == ComponentKind.HIGHER_ORDER_COMPONENT),
    }


def score_profile(profile: ComponentProfile, scoring: ScoringConfig) -> ComplexityScore:
    counts = indicator_counts(profile)
    contributions: dict[str, float] = {}
    for name, indicator in scoring.indicators.items():
        count = counts.get(name, 0)
        if indicator.thresholds is None:
            points = indicator.value if count else 0.0
        else:
            points = bucket(count, indicator.thresholds)
        contributions[name] = max(0.0, points * indicator.weight)

    raw = round(sum(contributions.values()), 4)
    score = ComplexityScore(raw=raw, tier=tier_for(raw, scoring.tier_cut_points), contributions=contributions)
    log.debug("%s: complexity %.2f (%s)", profile.path, raw, score.tier.value)
    return score
