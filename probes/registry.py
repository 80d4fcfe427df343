# ============================================================================
# READINESS PROBE REGISTRY
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Probe registration
# PURPOSE: Map probe kinds to probe implementations
# CREATED: 19 OCT 2026
# ============================================================================
"""
Readiness Probe Registry

Maps each ProbeKind to the class that performs it.

Usage:
    # Decorator registration
    @register_probe(ProbeKind.REDIS)
    class RedisProbe(ReadinessProbe):
        ...

    # Build a probe for a node
    probe = get_registry().create(node.probe, timeout_seconds=5.0)
"""

import logging
from typing import Dict, Optional, Type

from core.contracts import ProbeKind
from core.models.graph import NodeDefinition, ProbeSpec
from probes.core import ReadinessProbe

logger = logging.getLogger(__name__)


class ProbeRegistry:
    """Registry of probe classes keyed by ProbeKind."""

    def __init__(self):
        self._probes: Dict[ProbeKind, Type[ReadinessProbe]] = {}

    def register(self, kind: ProbeKind, probe_class: Type[ReadinessProbe]) -> None:
        if kind in self._probes:
            logger.warning(f"Overwriting probe for kind: {kind.value}")
        self._probes[kind] = probe_class
        logger.debug(f"Registered probe: {kind.value} -> {probe_class.__name__}")

    def get(self, kind: ProbeKind) -> Optional[Type[ReadinessProbe]]:
        return self._probes.get(kind)

    def create(self, spec: ProbeSpec, timeout_seconds: float = 5.0) -> ReadinessProbe:
        """
        Instantiate the probe for a spec.

        Raises:
            KeyError: If no probe is registered for spec.kind
        """
        probe_class = self._probes.get(spec.kind)
        if probe_class is None:
            raise KeyError(f"No probe registered for kind '{spec.kind.value}'")
        return probe_class(spec, timeout_seconds=timeout_seconds)

    def for_node(self, node: NodeDefinition, timeout_seconds: float = 5.0) -> ReadinessProbe:
        """Probe factory signature used by the orchestrator."""
        return self.create(node.probe, timeout_seconds=timeout_seconds)

    def __len__(self) -> int:
        return len(self._probes)

    def __contains__(self, kind: ProbeKind) -> bool:
        return kind in self._probes


# ============================================================================
# GLOBAL REGISTRY & DECORATOR
# ============================================================================

_registry: Optional[ProbeRegistry] = None


def get_registry() -> ProbeRegistry:
    """Get the global probe registry, with the built-in probes loaded."""
    global _registry
    if _registry is None:
        _registry = ProbeRegistry()
        import probes.checks  # noqa: F401  registers built-in probes
    return _registry


def register_probe(kind: ProbeKind):
    """
    Decorator to register a probe class for a kind.

    Example:
        @register_probe(ProbeKind.TCP)
        class TcpProbe(ReadinessProbe):
            async def check(self) -> bool:
                ...
    """
    def decorator(cls: Type[ReadinessProbe]) -> Type[ReadinessProbe]:
        get_registry().register(kind, cls)
        return cls

    return decorator


__all__ = [
    "ProbeRegistry",
    "get_registry",
    "register_probe",
]
