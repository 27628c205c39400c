"""
NetworkX dependency graph, usage scoring and cycle reporting.
"""

import logging

import networkx as nx

from .models import ComplexityTier, ComponentProfile, DependencyEdge, UsageScore

log = logging.getLogger(__name__)

# How much a dependent's complexity tier adds to the usage score of what it imports
USAGE_WEIGHTS: dict[ComplexityTier, float] = {
    ComplexityTier.VERY_HIGH: 2.0,
    ComplexityTier.HIGH: 2.0,
    ComplexityTier.MEDIUM: 1.5,
    ComplexityTier.LOW: 1.0,
}


def build_graph(profiles: list[ComponentProfile], edges: list[DependencyEdge]) -> nx.DiGraph:
    """Build a directed import graph keyed by project path; only resolved internal edges."""
    g: nx.DiGraph = nx.DiGraph()

    for p in profiles:
        g.add_node(p.path, name=p.name, tier=p.tier)

    for e in edges:
        if e.internal and e.resolved:
            g.add_edge(e.source, e.target)

    log.info("Graph: %d nodes, %d edges", g.number_of_nodes(), g.number_of_edges())
    return g


def reverse_dependencies(g: nx.DiGraph, path: str) -> list[str]:
    """Every module that imports ``path``."""
    if path not in g:
        return []
    return sorted(g.predecessors(path))


def usage_score(g: nx.DiGraph, path: str, threshold: int) -> UsageScore:
    dependents = reverse_dependencies(g, path)
    weighted = sum(
        USAGE_WEIGHTS[g.nodes[d].get("tier", ComplexityTier.LOW)] for d in dependents
    )
    return UsageScore(
        direct_usage=len(dependents),
        weighted_score=weighted,
        is_critical=len(dependents) >= threshold or weighted >= 1.5 * threshold,
    )


def apply_usage(g: nx.DiGraph, profiles: list[ComponentProfile], threshold: int) -> None:
    """Fill in dependencies, dependents and usage score on every profile."""
    for p in profiles:
        p.internal_dependencies = sorted(g.successors(p.path)) if p.path in g else []
        p.depended_on_by = reverse_dependencies(g, p.path)
        p.usage_score = usage_score(g, p.path, threshold)


def detect_cycles(g: nx.DiGraph) -> list[list[str]]:
    """Import cycles: strongly connected components of two or more modules, plus self-imports."""
    cycles = [sorted(c) for c in nx.strongly_connected_components(g) if len(c) > 1]
    cycles.extend([n] for n in nx.nodes_with_selfloops(g))
    cycles.sort()
    for cycle in cycles:
        log.warning("Import cycle: %s", " -> ".join(cycle))
    return cycles
