# ============================================================================
# READINESS PROBE MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Readiness probe plugin system
# PURPOSE: "Is dependency D ready?" for each dependency kind
# CREATED: 19 OCT 2026
# ============================================================================
"""
Readiness Probe Module

Plugin-based readiness probes, one per dependency kind:
- tcp: port accepts connections
- postgres: data store answers SELECT 1
- redis: cache answers PING
- http: health endpoint returns 2xx (and a healthy JSON status)
- command: command exits 0

Architecture:
- ReadinessProbe: Base class (check() -> bool)
- ProbeNotReady / ProbeConfigurationError: transient vs unrecoverable
- ProbeRegistry: kind -> probe class

Usage:
    from probes import get_registry

    probe = get_registry().create(node.probe, timeout_seconds=5.0)
    ready = await probe.check()
"""

from probes.core import (
    ReadinessProbe,
    ProbeNotReady,
    ProbeConfigurationError,
    resolve_target,
)
from probes.registry import (
    ProbeRegistry,
    register_probe,
    get_registry,
)

__all__ = [
    # Core types
    "ReadinessProbe",
    "ProbeNotReady",
    "ProbeConfigurationError",
    "resolve_target",
    # Registry
    "ProbeRegistry",
    "register_probe",
    "get_registry",
]
