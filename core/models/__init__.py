# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Model exports
# PURPOSE: Central export point for graph and report models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

- graph: static service declaration (pydantic, loaded from YAML)
- report: per-run outcomes (frozen dataclasses)
"""

from core.models.graph import (
    ConfigurationError,
    GraphConfigurationError,
    RetryPolicy,
    ProbeSpec,
    ActionSpec,
    NodeDefinition,
    HostCheck,
    PreflightSpec,
    ServiceGraph,
)
from core.models.report import NodeOutcome, HealthReport

__all__ = [
    # Graph
    "ConfigurationError",
    "GraphConfigurationError",
    "RetryPolicy",
    "ProbeSpec",
    "ActionSpec",
    "NodeDefinition",
    "HostCheck",
    "PreflightSpec",
    "ServiceGraph",
    # Report
    "NodeOutcome",
    "HealthReport",
]
