# ============================================================================
# EXTERNAL PROCESS INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Subprocess execution
# PURPOSE: Run external commands with timeouts and guaranteed cleanup
# CREATED: 19 OCT 2026
# ============================================================================
"""
External Process Infrastructure

Runs commands for command probes, one-shot actions (schema migration)
and the bring-up step (docker compose up -d).

Guarantees:
- The child is killed if the timeout expires or the awaiting task is
  cancelled; it is always reaped.
- Output is captured and decoded; only the tail is kept for reporting.
"""

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)

# Characters of stderr/stdout kept for error messages
OUTPUT_TAIL_CHARS = 500


@dataclass(frozen=True)
class CompletedCommand:
    """Result of a finished command."""
    argv: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: float

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def output_tail(self) -> str:
        """Last part of stderr, or stdout when stderr is empty."""
        text = (self.stderr or self.stdout).strip()
        return text[-OUTPUT_TAIL_CHARS:]


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_command(
    argv: Sequence[str],
    timeout_seconds: float,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
) -> CompletedCommand:
    """
    Run a command to completion.

    Args:
        argv: Command and arguments (no shell)
        timeout_seconds: Kill the command after this long
        env: Extra environment variables, merged over os.environ
        cwd: Working directory

    Returns:
        CompletedCommand (non-zero exit is NOT an exception)

    Raises:
        FileNotFoundError / PermissionError: executable missing or not runnable
        asyncio.TimeoutError: command did not finish in time (it was killed)
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    logger.debug(f"Running: {shlex.join(argv)}")

    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env={**os.environ, **env} if env else None,
        cwd=cwd,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_seconds)
    except BaseException:
        # Timeout or task cancellation: do not leave the child running
        await _terminate(proc)
        raise

    return CompletedCommand(
        argv=tuple(argv),
        returncode=proc.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        duration_ms=(loop.time() - started) * 1000,
    )


__all__ = [
    "CompletedCommand",
    "run_command",
]
