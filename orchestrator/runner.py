# ============================================================================
# STARTUP ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Dependency-ordered readiness orchestration
# PURPOSE: Walk the service graph, wait for each node, run one-shot actions
# CREATED: 19 OCT 2026
# ============================================================================
"""
Startup Orchestrator

Drives one orchestration pass over a ServiceGraph:
1. Compute the topological order (cycle -> GraphConfigurationError,
   raised before any probe is created)
2. For each node, once every dependency has a terminal outcome:
   - any dependency not READY -> SKIPPED
   - run cancelled            -> CANCELLED
   - otherwise RetryWaiter; on READY run the node's one-shot action once
     (failure -> ACTION_FAILED, dependents are then SKIPPED)
3. Collect outcomes in the pre-computed order into a HealthReport

Independent nodes are probed concurrently (bounded by max_parallel);
concurrent=False processes nodes strictly one after another. Either way
a node's probing never starts before its dependencies are resolved.

Cancellation (operator interrupt or overall deadline) sets a stop event
that in-flight waits observe within one poll interval.
"""

import asyncio
import contextlib
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from core.config import get_defaults
from core.logging import log_context, log_checkpoint
from core.models.graph import NodeDefinition, RetryPolicy, ServiceGraph
from core.models.report import HealthReport, NodeOutcome
from orchestrator.actions import ActionError, ActionRunner
from orchestrator.engine.topology import topological_order
from orchestrator.waiter import RetryWaiter, RunCancelled, run_unless_stopped
from probes.core import ReadinessProbe

logger = logging.getLogger(__name__)

# (node, per-attempt timeout) -> probe
ProbeFactory = Callable[[NodeDefinition, float], ReadinessProbe]


def _default_probe_factory(node: NodeDefinition, timeout_seconds: float) -> ReadinessProbe:
    from probes.registry import get_registry
    return get_registry().for_node(node, timeout_seconds)


class Orchestrator:
    """
    Single-use orchestration run.

    The orchestrator exclusively owns the in-progress state (which nodes
    have been attempted, the stop event). Graph and policies are read-only.
    """

    def __init__(
        self,
        probe_factory: Optional[ProbeFactory] = None,
        action_runner: Optional[ActionRunner] = None,
        default_policy: Optional[RetryPolicy] = None,
        concurrent: bool = True,
        max_parallel: int = 8,
        overall_deadline_seconds: Optional[float] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            probe_factory: Builds the probe for a node (default: probe registry)
            action_runner: Executes one-shot actions
            default_policy: Retry policy for nodes/graphs without one
            concurrent: Probe independent nodes concurrently
            max_parallel: Max nodes waiting at the same time
            overall_deadline_seconds: Cancel the whole run after this long
        """
        self.probe_factory = probe_factory or _default_probe_factory
        self.action_runner = action_runner or ActionRunner()
        self.default_policy = default_policy or get_defaults().retry.to_policy()
        self.concurrent = concurrent
        self.max_parallel = max(1, max_parallel)
        self.overall_deadline_seconds = overall_deadline_seconds

        self._stop_event = asyncio.Event()
        self._cancel_reason: Optional[str] = None
        self._waiter = RetryWaiter(self._stop_event)

    @classmethod
    def from_defaults(cls, **overrides) -> "Orchestrator":
        """Create from environment-driven defaults."""
        defaults = get_defaults()
        kwargs = {
            "default_policy": defaults.retry.to_policy(),
            "concurrent": defaults.orchestrator.concurrent,
            "max_parallel": defaults.orchestrator.max_parallel,
            "overall_deadline_seconds": defaults.orchestrator.overall_deadline,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # ================================================================
    # CANCELLATION
    # ================================================================

    @property
    def is_cancelled(self) -> bool:
        return self._stop_event.is_set()

    def cancel(self, reason: str = "cancelled by operator") -> None:
        """Request cancellation. The first reason given is kept."""
        if self._cancel_reason is None:
            self._cancel_reason = reason
            logger.warning(f"Cancelling run: {reason}")
        self._stop_event.set()

    # ================================================================
    # BRING-UP
    # ================================================================

    async def bring_up(self, graph: ServiceGraph) -> bool:
        """
        Run the graph's bring-up command (e.g. docker compose up -d).

        Returns:
            False if the graph has none

        Raises:
            ActionError: the command failed
            RunCancelled: cancelled while starting
        """
        if graph.bring_up is None:
            return False
        logger.info(f"Starting services: {graph.bring_up.describe()}")
        await run_unless_stopped(self.action_runner.run(graph.bring_up), self._stop_event)
        return True

    # ================================================================
    # RUN
    # ================================================================

    async def run(self, graph: ServiceGraph) -> HealthReport:
        """
        Execute one orchestration pass.

        Returns:
            HealthReport with exactly one outcome per node

        Raises:
            GraphConfigurationError: cycle or structural error (before any probe)
        """
        order = topological_order(graph)

        loop = asyncio.get_running_loop()
        started = loop.time()
        started_at = datetime.now(timezone.utc)
        run_id = uuid.uuid4().hex[:8]

        deadline_handle = None
        if self.overall_deadline_seconds:
            deadline_handle = loop.call_later(
                self.overall_deadline_seconds,
                self.cancel,
                f"overall deadline of {self.overall_deadline_seconds:g}s exceeded",
            )

        with log_context(run_id=run_id):
            logger.info(f"Orchestrating '{graph.name}': {' -> '.join(order)}")
            log_checkpoint("run_started", {"nodes": order})
            try:
                if self.concurrent:
                    outcomes = await self._run_concurrent(graph, order)
                else:
                    outcomes = await self._run_sequential(graph, order)
            finally:
                if deadline_handle is not None:
                    deadline_handle.cancel()

            report = HealthReport(
                graph_name=graph.name,
                outcomes=tuple(outcomes[node_id] for node_id in order),
                cancelled=self.is_cancelled,
                cancel_reason=self._cancel_reason,
                duration_ms=(loop.time() - started) * 1000,
                started_at=started_at,
            )
            log_checkpoint("run_completed", {"success": report.success})

        return report

    async def _run_sequential(
        self, graph: ServiceGraph, order: List[str]
    ) -> Dict[str, NodeOutcome]:
        outcomes: Dict[str, NodeOutcome] = {}
        for node_id in order:
            node = graph.get_node(node_id)
            dep_outcomes = [outcomes[d] for d in node.depends_on]
            outcomes[node_id] = await self._process_node(graph, node, dep_outcomes)
        return outcomes

    async def _run_concurrent(
        self, graph: ServiceGraph, order: List[str]
    ) -> Dict[str, NodeOutcome]:
        semaphore = asyncio.Semaphore(self.max_parallel)
        tasks: Dict[str, asyncio.Task] = {}

        # Topological order guarantees dependency tasks exist first
        for node_id in order:
            node = graph.get_node(node_id)
            dep_tasks = [tasks[d] for d in node.depends_on]
            tasks[node_id] = asyncio.create_task(
                self._process_after(graph, node, dep_tasks, semaphore),
                name=f"node:{node_id}",
            )

        results = await asyncio.gather(*tasks.values())
        # Single collector, keyed by node: arrival order never leaks into the report
        return dict(zip(tasks.keys(), results))

    async def _process_after(
        self,
        graph: ServiceGraph,
        node: NodeDefinition,
        dep_tasks: List[asyncio.Task],
        semaphore: asyncio.Semaphore,
    ) -> NodeOutcome:
        dep_outcomes = [await task for task in dep_tasks]
        return await self._process_node(graph, node, dep_outcomes, semaphore)

    async def _process_node(
        self,
        graph: ServiceGraph,
        node: NodeDefinition,
        dep_outcomes: List[NodeOutcome],
        semaphore: Optional[asyncio.Semaphore] = None,
    ) -> NodeOutcome:
        """Resolve one node whose dependencies all have terminal outcomes."""
        with log_context(node_id=node.node_id):
            unmet = [o for o in dep_outcomes if not o.is_ready]
            if unmet:
                detail = "dependencies not ready: " + ", ".join(
                    f"{o.node_id} ({o.status.value})" for o in unmet
                )
                logger.warning(f"Skipping {node.node_id}: {detail}")
                return NodeOutcome.skipped(node.node_id, detail)

            if self.is_cancelled:
                return NodeOutcome.cancelled(
                    node.node_id, detail=self._cancel_reason or "run cancelled"
                )

            try:
                async with (semaphore or contextlib.nullcontext()):
                    return await self._probe_and_act(graph, node)
            except Exception as e:
                logger.exception(f"Unexpected error while processing {node.node_id}")
                return NodeOutcome.action_failed(node.node_id, f"{type(e).__name__}: {e}")

    async def _probe_and_act(self, graph: ServiceGraph, node: NodeDefinition) -> NodeOutcome:
        policy = graph.policy_for(node, self.default_policy)
        probe = self.probe_factory(node, policy.attempt_timeout_seconds)

        outcome = await self._waiter.wait_until_ready(node, policy, probe)
        if not outcome.is_ready or node.action is None:
            return outcome
        return await self._run_action(node, outcome)

    async def _run_action(self, node: NodeDefinition, outcome: NodeOutcome) -> NodeOutcome:
        """Run the node's one-shot action; the node only counts as READY if it succeeds."""
        if self.is_cancelled:
            return NodeOutcome.cancelled(
                node.node_id, outcome.attempts, "cancelled before one-shot action", outcome.duration_ms
            )

        loop = asyncio.get_running_loop()
        started = loop.time()

        def total_ms() -> float:
            return outcome.duration_ms + (loop.time() - started) * 1000

        try:
            await run_unless_stopped(self.action_runner.run(node.action), self._stop_event)
        except RunCancelled:
            return NodeOutcome.cancelled(
                node.node_id, outcome.attempts, "cancelled during one-shot action", total_ms()
            )
        except ActionError as e:
            logger.error(f"One-shot action for {node.node_id} failed: {e}")
            return NodeOutcome.action_failed(
                node.node_id, str(e),
                attempts=outcome.attempts, duration_ms=total_ms(), action_ran=True,
            )

        log_checkpoint("action_completed", {"action": node.action.describe()})
        return replace(outcome, action_ran=True, duration_ms=total_ms())


__all__ = [
    "Orchestrator",
    "ProbeFactory",
]
