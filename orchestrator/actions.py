# ============================================================================
# ONE-SHOT ACTIONS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - One-shot action execution
# PURPOSE: Run schema migration (and bring-up) commands exactly once
# CREATED: 19 OCT 2026
# ============================================================================
"""
One-Shot Actions

A one-shot action is an external command (e.g. `rails db:migrate` inside the
application container) that runs at most once per orchestration run and
only after its node is confirmed ready.

Success is a zero exit status. Anything else raises ActionError carrying
the exit code and the tail of the command's output.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional

from core.models.graph import ActionSpec
from infrastructure.process import run_command

logger = logging.getLogger(__name__)


class ActionError(Exception):
    """Raised when a one-shot action does not complete successfully."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


@dataclass(frozen=True)
class ActionResult:
    """Successful action run."""
    description: str
    duration_ms: float
    output_tail: str = ""


class ActionRunner:
    """Executes ActionSpecs as subprocesses."""

    async def run(self, spec: ActionSpec) -> ActionResult:
        """
        Run the action to completion.

        Raises:
            ActionError: missing executable, timeout or non-zero exit
        """
        description = spec.describe()
        logger.info(f"Running one-shot action: {description}")

        try:
            result = await run_command(
                spec.command,
                timeout_seconds=spec.timeout_seconds,
                env=spec.env or None,
                cwd=spec.cwd,
            )
        except (FileNotFoundError, PermissionError) as e:
            if spec.cwd and not os.path.isdir(spec.cwd):
                raise ActionError(f"Working directory '{spec.cwd}' does not exist") from e
            raise ActionError(f"Cannot run '{spec.command[0]}': {e}") from e
        except asyncio.TimeoutError as e:
            raise ActionError(
                f"'{description}' did not finish within {spec.timeout_seconds:g}s"
            ) from e

        if not result.succeeded:
            tail = result.output_tail()
            message = f"'{description}' exited with {result.returncode}"
            raise ActionError(
                f"{message}: {tail}" if tail else message,
                returncode=result.returncode,
            )

        logger.info(f"Action completed in {result.duration_ms / 1000:.1f}s: {description}")
        return ActionResult(
            description=description,
            duration_ms=result.duration_ms,
            output_tail=result.output_tail(),
        )


__all__ = [
    "ActionError",
    "ActionResult",
    "ActionRunner",
]
