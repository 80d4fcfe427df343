# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Readiness orchestration
# PURPOSE: Bring a service graph to a ready state in dependency order
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

Waits for each service in a graph to become ready, respecting
ready-before edges, and runs one-shot actions (migrations) once.

Usage:
    from orchestrator import Orchestrator

    orchestrator = Orchestrator.from_defaults()
    report = await orchestrator.run(graph)
"""

from .actions import ActionError, ActionResult, ActionRunner
from .runner import Orchestrator
from .waiter import RetryWaiter, RunCancelled, run_unless_stopped

__all__ = [
    "Orchestrator",
    "RetryWaiter",
    "RunCancelled",
    "run_unless_stopped",
    "ActionRunner",
    "ActionResult",
    "ActionError",
]
