# ============================================================================
# READINESS PROBE CORE TYPES
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Base classes for readiness probes
# PURPOSE: Probe interface and the transient / unrecoverable error split
# CREATED: 19 OCT 2026
# ============================================================================
"""
Readiness Probe Core Types

A probe answers one question: is this dependency ready right now?

Contract:
- check() returns True when ready
- check() returns False, or raises ProbeNotReady, when the target is not
  ready yet (connection refused, still loading, non-2xx). The waiter retries.
- check() raises ProbeConfigurationError when retrying cannot help
  (DNS resolution failure, authentication rejected, missing executable).
  The waiter stops immediately.

Probes are side-effect-free and idempotent. A probe must not block longer
than its timeout_seconds; the waiter additionally enforces it.
"""

import asyncio
import socket
from abc import ABC, abstractmethod
from typing import Optional

from core.models.graph import ProbeSpec


class ProbeNotReady(Exception):
    """Target is not ready yet; retrying may succeed."""
    pass


class ProbeConfigurationError(Exception):
    """Target cannot become ready without operator action; do not retry."""
    pass


async def resolve_target(host: str, port: Optional[int]) -> None:
    """
    Resolve host before connecting.

    A name that cannot be resolved is a configuration error, not a
    service that is still starting.

    Raises:
        ProbeConfigurationError: If DNS resolution fails
    """
    loop = asyncio.get_running_loop()
    try:
        await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        if e.errno == socket.EAI_AGAIN:
            raise ProbeNotReady(f"Temporary failure resolving '{host}': {e}") from e
        raise ProbeConfigurationError(f"Cannot resolve host '{host}': {e}") from e


class ReadinessProbe(ABC):
    """
    Base class for readiness probes.

    Subclass and implement check(). Register with @register_probe so the
    orchestrator can build one from a node's ProbeSpec.

    Attributes:
        spec: Probe parameters from the graph
        timeout_seconds: Per-attempt timeout supplied by the caller

    Example:
        @register_probe(ProbeKind.TCP)
        class TcpProbe(ReadinessProbe):
            async def check(self) -> bool:
                ...
    """

    def __init__(self, spec: ProbeSpec, timeout_seconds: float = 5.0):
        self.spec = spec
        self.timeout_seconds = timeout_seconds

    @property
    def target(self) -> str:
        return self.spec.describe()

    @abstractmethod
    async def check(self) -> bool:
        """
        Perform one readiness check.

        Returns:
            True if the target is ready

        Raises:
            ProbeNotReady: transient, retry
            ProbeConfigurationError: unrecoverable, do not retry
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target})"


__all__ = [
    "ProbeNotReady",
    "ProbeConfigurationError",
    "ReadinessProbe",
    "resolve_target",
]
