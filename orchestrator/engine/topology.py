# ============================================================================
# SERVICE GRAPH TOPOLOGY
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Dependency ordering
# PURPOSE: Topological order and cycle detection for service graphs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Graph Topology

Turns declared ready-before edges into a processing order.

Features:
- Dependency graph construction (forward and backward edges)
- Deterministic topological sort (ties broken by declaration order)
- Cycle detection naming the nodes on the cycle
- Dependency levels: waves of nodes with no edges between them

Everything here runs before any probe exists; failures are
GraphConfigurationError.
"""

import heapq
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from core.models.graph import GraphConfigurationError, ServiceGraph

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """
    Dependency graph for a service graph.

    A -> B means "B depends on A" (A must be resolved before B starts).
    """
    # Node ID -> nodes that depend on it
    forward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    # Node ID -> nodes it depends on
    backward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    # Node ID -> declaration index
    positions: Dict[str, int] = field(default_factory=dict)

    def add_node(self, node_id: str) -> None:
        self.positions.setdefault(node_id, len(self.positions))

    def add_edge(self, from_node: str, to_node: str) -> None:
        """Add a dependency edge: to_node depends on from_node."""
        self.forward_edges[from_node].append(to_node)
        self.backward_edges[to_node].append(from_node)

    @property
    def nodes(self) -> List[str]:
        return sorted(self.positions, key=self.positions.get)

    def get_dependencies(self, node_id: str) -> List[str]:
        return self.backward_edges.get(node_id, [])

    def get_dependents(self, node_id: str) -> List[str]:
        return self.forward_edges.get(node_id, [])


def build_dependency_graph(graph: ServiceGraph) -> DependencyGraph:
    """
    Build the dependency graph, rejecting structural errors.

    Raises:
        GraphConfigurationError: duplicate ids, dangling or self references
    """
    errors = graph.validate_structure()
    if errors:
        raise GraphConfigurationError(
            f"Invalid service graph '{graph.name}': " + "; ".join(errors)
        )

    deps = DependencyGraph()
    for node in graph.nodes:
        deps.add_node(node.node_id)
    for node in graph.nodes:
        for dep in node.depends_on:
            deps.add_edge(dep, node.node_id)
    return deps


def _find_cycle(deps: DependencyGraph, remaining: Set[str]) -> List[str]:
    """Return one cycle among the remaining nodes as [a, b, ..., a]."""
    visiting: List[str] = []
    on_path: Set[str] = set()
    done: Set[str] = set()

    def visit(node_id: str) -> Optional[List[str]]:
        visiting.append(node_id)
        on_path.add(node_id)
        for dep in deps.get_dependencies(node_id):
            if dep not in remaining or dep in done:
                continue
            if dep in on_path:
                start = visiting.index(dep)
                return list(reversed(visiting[start:] + [dep]))
            found = visit(dep)
            if found:
                return found
        visiting.pop()
        on_path.discard(node_id)
        done.add(node_id)
        return None

    for node_id in sorted(remaining, key=deps.positions.get):
        if node_id not in done:
            found = visit(node_id)
            if found:
                return found
    return sorted(remaining, key=deps.positions.get)


def topological_order(graph: ServiceGraph) -> List[str]:
    """
    Compute the processing order.

    Kahn's algorithm; among nodes whose dependencies are all placed, the one
    declared first goes first, so the order is reproducible.

    Raises:
        GraphConfigurationError: structural error or cycle
    """
    deps = build_dependency_graph(graph)

    in_degree = {n: len(deps.get_dependencies(n)) for n in deps.nodes}
    heap = [(deps.positions[n], n) for n, degree in in_degree.items() if degree == 0]
    heapq.heapify(heap)
    order: List[str] = []

    while heap:
        _, node_id = heapq.heappop(heap)
        order.append(node_id)
        for dependent in deps.get_dependents(node_id):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(heap, (deps.positions[dependent], dependent))

    if len(order) != len(in_degree):
        remaining = set(in_degree) - set(order)
        cycle = _find_cycle(deps, remaining)
        raise GraphConfigurationError(
            f"Dependency cycle in service graph '{graph.name}': {' -> '.join(cycle)}"
        )

    logger.debug(f"Processing order: {order}")
    return order


def dependency_levels(graph: ServiceGraph) -> List[List[str]]:
    """
    Group nodes into waves.

    Every node in wave N depends only on nodes in waves < N, so nodes
    within a wave can be probed concurrently.
    """
    order = topological_order(graph)
    level: Dict[str, int] = {}
    for node_id in order:
        node = graph.get_node(node_id)
        level[node_id] = 1 + max((level[d] for d in node.depends_on), default=-1)

    waves: List[List[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for node_id in order:
        waves[level[node_id]].append(node_id)
    return waves


__all__ = [
    "DependencyGraph",
    "build_dependency_graph",
    "topological_order",
    "dependency_levels",
]
