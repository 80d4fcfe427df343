# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Engine components
# PURPOSE: Graph ordering and template resolution
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- topology: dependency ordering, cycle detection, dependency levels
- templates: Jinja2-based {{ env.* }} resolution for graph files
"""

from orchestrator.engine.templates import (
    TemplateResolver,
    TemplateContext,
    TemplateResolutionError,
    get_resolver,
    resolve_document,
)
from orchestrator.engine.topology import (
    DependencyGraph,
    build_dependency_graph,
    topological_order,
    dependency_levels,
)

__all__ = [
    # Templates
    "TemplateResolver",
    "TemplateContext",
    "TemplateResolutionError",
    "get_resolver",
    "resolve_document",
    # Topology
    "DependencyGraph",
    "build_dependency_graph",
    "topological_order",
    "dependency_levels",
]
