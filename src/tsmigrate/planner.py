"""
Batch planning: categories, migration priorities and the six-batch roadmap.

Batches are built in a fixed sequence and every batch skips components an
earlier batch already claimed, so a component lands in exactly one batch.
Ordering never depends on the import graph's topology.
"""

import logging
import math

from .models import (
    BatchComponent,
    Category,
    ComplexityTier,
    ComponentKind,
    ComponentProfile,
    MigrationBatch,
    PatternTag,
    Priority,
    UsageScore,
)

log = logging.getLogger(__name__)

FEATURE_MIN_BYTES = 500
FEATURE_MIN_STATE = 2

_PATH_CATEGORIES: tuple[tuple[frozenset[str], Category], ...] = (
    (frozenset({"layout", "layouts"}), Category.LAYOUT),
    (frozenset({"ui"}), Category.UI),
    (frozenset({"forms", "form"}), Category.FORM),
    (frozenset({"pages"}), Category.PAGE),
    (frozenset({"utils", "helpers"}), Category.UTILITY),
)

BATCH_DEFINITIONS: tuple[tuple[str, str], ...] = (
    ("Batch 1: Base Components", "Foundation components with minimum dependencies"),
    ("Batch 2: UI Components", "Common UI elements and utilities"),
    ("Batch 3: Form and Layout Components", "Form handling and page layout components"),
    ("Batch 4: Feature Components (Medium)", "Feature components of moderate complexity"),
    ("Batch 5: Complex Feature Components", "Complex feature components with many dependencies"),
    ("Batch 6: Remaining Components", "Everything not covered by an earlier batch"),
)

_NO_USAGE = UsageScore(direct_usage=0, weighted_score=0.0, is_critical=False)


def categorize(profile: ComponentProfile) -> Category:
    segments = set(profile.path.split("/")[:-1])
    for names, category in _PATH_CATEGORIES:
        if segments & names:
            return category
    if PatternTag.FORM_HANDLING in profile.patterns:
        return Category.FORM
    if profile.kind == ComponentKind.FUNCTION_COMPONENT:
        if len(profile.state) >= FEATURE_MIN_STATE and profile.file_size >= FEATURE_MIN_BYTES:
            return Category.FEATURE
        return Category.UI
    return Category.OTHER


def _is_high_tier(profile: ComponentProfile) -> bool:
    return profile.tier in (ComplexityTier.HIGH, ComplexityTier.VERY_HIGH)


def assign_priority(profile: ComponentProfile) -> Priority:
    """Ordered rules, first match wins; the final default makes the function total."""
    deps = len(profile.internal_dependencies)
    usage = profile.usage_score or _NO_USAGE
    tier = profile.tier

    if profile.migrated:
        return Priority.MIGRATED
    if deps <= 1 and usage.is_critical:
        return Priority.HIGHEST
    if profile.category == Category.UTILITY and tier == ComplexityTier.LOW:
        return Priority.HIGH
    if profile.category == Category.UI and tier == ComplexityTier.LOW and usage.direct_usage > 0:
        return Priority.HIGH
    if tier == ComplexityTier.LOW and deps <= 2:
        return Priority.MEDIUM
    if tier == ComplexityTier.MEDIUM and usage.direct_usage > 0:
        return Priority.MEDIUM
    if _is_high_tier(profile) or (profile.category == Category.FEATURE and deps > 3):
        return Priority.LOW
    return Priority.MEDIUM


def batch_component(profile: ComponentProfile) -> BatchComponent:
    return BatchComponent(
        name=profile.name,
        path=profile.path,
        complexity=profile.complexity.raw if profile.complexity else 0.0,
        complexity_level=profile.tier.value,
        category=profile.category.value,
        dependency_count=len(profile.internal_dependencies),
        used_by_count=len(profile.depended_on_by),
    )


def _fewest_deps(profiles: list[ComponentProfile]) -> list[ComponentProfile]:
    return sorted(profiles, key=lambda p: (len(p.internal_dependencies), p.path))


def _share(profiles: list[ComponentProfile], fraction: float, of: int | None = None) -> list[ComponentProfile]:
    count = math.ceil((len(profiles) if of is None else of) * fraction)
    return profiles[:count]


def plan_batches(profiles: list[ComponentProfile]) -> list[MigrationBatch]:
    pending = [p for p in profiles if p.migration_priority != Priority.MIGRATED]
    tiers = {
        pr: _fewest_deps([p for p in pending if p.migration_priority == pr])
        for pr in (Priority.HIGHEST, Priority.HIGH, Priority.MEDIUM, Priority.LOW)
    }
    highest, high = tiers[Priority.HIGHEST], tiers[Priority.HIGH]
    medium, low = tiers[Priority.MEDIUM], tiers[Priority.LOW]
    claimed: set[str] = set()

    def unclaimed(candidates: list[ComponentProfile]) -> list[ComponentProfile]:
        return [p for p in candidates if p.path not in claimed]

    def claim(candidates: list[ComponentProfile]) -> list[ComponentProfile]:
        taken: list[ComponentProfile] = []
        for p in candidates:
            if p.path not in claimed:
                claimed.add(p.path)
                taken.append(p)
        return taken

    members = [claim(_share(highest, 0.8) + _share(high, 0.3))]

    ui_high = unclaimed([p for p in high if p.category in (Category.UI, Category.UTILITY)])
    simple_ui = unclaimed([p for p in medium if p.category == Category.UI and p.tier == ComplexityTier.LOW])
    members.append(claim(
        unclaimed(highest) + _share(ui_high, 0.5, of=len(high)) + _share(simple_ui, 0.2, of=len(medium))
    ))

    members.append(claim([p for p in high + medium if p.category in (Category.FORM, Category.LAYOUT)]))

    members.append(claim(high + [p for p in medium if p.category == Category.FEATURE and not _is_high_tier(p)]))

    members.append(claim(medium + [
        p for p in low
        if p.tier == ComplexityTier.MEDIUM or (p.category == Category.FEATURE and not _is_high_tier(p))
    ]))

    members.append(claim(_fewest_deps(pending)))

    batches = [
        MigrationBatch(
            id=index + 1,
            name=name,
            description=description,
            components=[batch_component(p) for p in group],
        )
        for index, ((name, description), group) in enumerate(zip(BATCH_DEFINITIONS, members))
    ]
    for batch in batches:
        log.info("%s: %d components", batch.name, batch.component_count)
    return batches
