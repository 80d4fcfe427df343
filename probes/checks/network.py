# ============================================================================
# TCP READINESS PROBE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - tcp-ping
# PURPOSE: Port accepts connections
# CREATED: 19 OCT 2026
# ============================================================================
"""
TCP Readiness Probe

Weakest readiness signal: something is listening. Used for services
without a protocol-level ping (e.g. alert router, exporters without /health).
"""

import asyncio
import logging

from core.contracts import ProbeKind
from probes.core import ReadinessProbe, ProbeNotReady, resolve_target
from probes.registry import register_probe

logger = logging.getLogger(__name__)


@register_probe(ProbeKind.TCP)
class TcpProbe(ReadinessProbe):
    """Open and immediately close a TCP connection."""

    async def check(self) -> bool:
        host = self.spec.host
        port = self.spec.effective_port
        await resolve_target(host, port)

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ProbeNotReady(
                f"Timed out connecting to {host}:{port} after {self.timeout_seconds}s"
            ) from e
        except OSError as e:
            raise ProbeNotReady(f"Connection to {host}:{port} failed: {e}") from e

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            # Connection was established; a reset on close still means ready
            logger.debug(f"Ignoring close error for {host}:{port}: {e}")
        return True


__all__ = ["TcpProbe"]
