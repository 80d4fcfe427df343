# ============================================================================
# COMMAND READINESS PROBE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - command exit status
# PURPOSE: Readiness decided by an external command (exit 0 = ready)
# CREATED: 19 OCT 2026
# ============================================================================
"""
Command Readiness Probe

For dependencies checked from inside their container, e.g.

    command: docker compose exec -T postgres pg_isready -U app -d app

A missing executable is unrecoverable; any non-zero exit is "not yet".
"""

import asyncio
import shlex

from core.contracts import ProbeKind
from infrastructure.process import run_command
from probes.core import ReadinessProbe, ProbeNotReady, ProbeConfigurationError
from probes.registry import register_probe


@register_probe(ProbeKind.COMMAND)
class CommandProbe(ReadinessProbe):
    """Run the command; exit status 0 means ready."""

    async def check(self) -> bool:
        argv = self.spec.command
        try:
            result = await run_command(argv, timeout_seconds=self.timeout_seconds)
        except (FileNotFoundError, PermissionError) as e:
            raise ProbeConfigurationError(f"Cannot run '{argv[0]}': {e}") from e
        except asyncio.TimeoutError as e:
            raise ProbeNotReady(
                f"'{shlex.join(argv)}' did not finish within {self.timeout_seconds}s"
            ) from e

        if not result.succeeded:
            tail = result.output_tail()
            message = f"'{shlex.join(argv)}' exited with {result.returncode}"
            raise ProbeNotReady(f"{message}: {tail}" if tail else message)
        return True


__all__ = ["CommandProbe"]
