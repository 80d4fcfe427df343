# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - External processes
# PURPOSE: Subprocess execution for probes, actions and bring-up
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for the startup orchestrator.

Provides:
- run_command: Run an external command with a timeout, killing it on
  timeout or cancellation
- CompletedCommand: Exit status and captured output

Usage:
    from infrastructure import run_command

    result = await run_command(["docker", "compose", "up", "-d"], timeout_seconds=600)
    if not result.succeeded:
        print(result.output_tail())
"""

from infrastructure.process import CompletedCommand, run_command

__all__ = [
    "CompletedCommand",
    "run_command",
]
