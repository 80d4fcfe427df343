# ============================================================================
# ORCHESTRATOR TESTS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Tests - Dependency-ordered orchestration scenarios
# PURPOSE: Verify ordering, skipping, one-shot actions and cancellation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Tests

Scenarios:
1. store ready on attempt 3, then app ready -> both READY, app probed after store
2. store never ready -> TIMED_OUT, app SKIPPED with zero app probe calls
3. Cycle -> GraphConfigurationError before any probe is created
4. Operator cancel mid-retry or mid-action -> CANCELLED, dependents SKIPPED,
   report flagged, no action started after the cancel
5. One-shot action runs exactly once; failure -> ACTION_FAILED, dependents SKIPPED
6. Independent nodes are probed concurrently; sequential mode serializes
7. Report order is the processing order, not completion order

Run with:
    pytest tests/test_orchestrator.py -v
"""

import asyncio
from typing import Dict, List

import pytest

from core.contracts import ExitCode, OutcomeStatus, ProbeKind
from core.models import (
    ActionSpec,
    GraphConfigurationError,
    NodeDefinition,
    NodeOutcome,
    ProbeSpec,
    RetryPolicy,
    ServiceGraph,
)
from orchestrator import ActionError, ActionResult, Orchestrator
from probes.core import ProbeConfigurationError, ProbeNotReady, ReadinessProbe


SPEC = ProbeSpec(kind=ProbeKind.TCP, host="localhost", port=5432)

FAST = RetryPolicy(
    max_attempts=5, delay_seconds=0.01, deadline_seconds=10, attempt_timeout_seconds=1,
)


# ============================================================================
# FAKES
# ============================================================================

class ScriptedProbe(ReadinessProbe):
    """Plays back True/False/exception results; the last entry repeats."""

    def __init__(self, node_id, script, timeline):
        super().__init__(SPEC, timeout_seconds=1.0)
        self.node_id = node_id
        self.script = list(script)
        self.timeline = timeline
        self.calls = 0

    async def check(self) -> bool:
        self.calls += 1
        self.timeline.append((self.node_id, asyncio.get_running_loop().time()))
        result = self.script[min(self.calls, len(self.script)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


class ProbeBook:
    """Probe factory handing out scripted probes by node id."""

    def __init__(self, scripts: Dict[str, list]):
        self.scripts = scripts
        self.timeline: List[tuple] = []
        self.probes: Dict[str, ScriptedProbe] = {}

    def __call__(self, node, timeout_seconds):
        probe = ScriptedProbe(node.node_id, self.scripts[node.node_id], self.timeline)
        self.probes[node.node_id] = probe
        return probe

    def calls(self, node_id) -> int:
        probe = self.probes.get(node_id)
        return probe.calls if probe else 0

    def first_call(self, node_id) -> float:
        return min(t for n, t in self.timeline if n == node_id)

    def last_call(self, node_id) -> float:
        return max(t for n, t in self.timeline if n == node_id)


class RecordingActionRunner:
    """ActionRunner stand-in that records runs, can fail and can be slow."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.calls: List[str] = []

    async def run(self, spec: ActionSpec) -> ActionResult:
        self.calls.append(spec.describe())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ActionError(f"'{spec.describe()}' exited with 1: relation missing", returncode=1)
        return ActionResult(description=spec.describe(), duration_ms=1.0)


def node(node_id, depends_on=(), action=None):
    return NodeDefinition(
        node_id=node_id,
        probe=SPEC,
        depends_on=depends_on,
        action=ActionSpec(command=action) if action else None,
    )


def run(graph, book, **kwargs):
    kwargs.setdefault("default_policy", FAST)
    orchestrator = Orchestrator(probe_factory=book, **kwargs)
    return asyncio.run(orchestrator.run(graph))


NOT_READY = ProbeNotReady("connection refused")


# ============================================================================
# ORDERING AND SKIPPING
# ============================================================================

class TestOrdering:
    """Dependencies gate probing."""

    def test_store_ready_on_third_attempt_then_app(self):
        graph = ServiceGraph(name="rails", nodes=[node("store"), node("app", ["store"])])
        book = ProbeBook({"store": [NOT_READY, NOT_READY, True], "app": [True]})

        report = run(graph, book)

        assert report.statuses() == [
            ("store", OutcomeStatus.READY),
            ("app", OutcomeStatus.READY),
        ]
        assert report.get("store").attempts == 3
        assert report.get("app").attempts == 1
        assert book.first_call("app") >= book.last_call("store")
        assert report.success
        assert report.exit_code == ExitCode.OK

    def test_timed_out_dependency_skips_dependent(self):
        graph = ServiceGraph(name="rails", nodes=[node("store"), node("app", ["store"])])
        book = ProbeBook({"store": [NOT_READY], "app": [True]})

        report = run(graph, book)

        store, app = report.outcomes
        assert store.status == OutcomeStatus.TIMED_OUT
        assert store.attempts == 5
        assert app.status == OutcomeStatus.SKIPPED
        assert "store" in app.detail
        assert book.calls("app") == 0
        assert report.exit_code == ExitCode.UNHEALTHY

    def test_skip_propagates_transitively(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"), node("app", ["store"]), node("verification", ["app"]),
        ])
        book = ProbeBook({"store": [NOT_READY], "app": [True], "verification": [True]})

        report = run(graph, book)

        assert report.get("app").status == OutcomeStatus.SKIPPED
        assert report.get("verification").status == OutcomeStatus.SKIPPED
        assert book.calls("verification") == 0

    def test_independent_branch_still_runs(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"), node("cache"), node("app", ["store", "cache"]),
        ])
        book = ProbeBook({"store": [NOT_READY], "cache": [True], "app": [True]})

        report = run(graph, book)

        assert report.get("cache").status == OutcomeStatus.READY
        assert report.get("app").status == OutcomeStatus.SKIPPED

    def test_unrecoverable_probe_error(self):
        graph = ServiceGraph(name="rails", nodes=[node("store"), node("app", ["store"])])
        book = ProbeBook({
            "store": [ProbeConfigurationError("password authentication failed")],
            "app": [True],
        })

        report = run(graph, book)

        assert report.get("store").status == OutcomeStatus.ACTION_FAILED
        assert book.calls("store") == 1
        assert report.get("app").status == OutcomeStatus.SKIPPED

    def test_cycle_rejected_before_any_probe(self):
        graph = ServiceGraph(name="bad", nodes=[node("a", ["b"]), node("b", ["a"])])
        book = ProbeBook({"a": [True], "b": [True]})

        with pytest.raises(GraphConfigurationError, match="cycle"):
            run(graph, book)
        assert book.probes == {}

    def test_report_order_is_processing_order(self):
        """slow is declared first and finishes last; it still comes first."""
        graph = ServiceGraph(name="g", nodes=[node("slow"), node("fast")])
        book = ProbeBook({"slow": [NOT_READY, NOT_READY, True], "fast": [True]})

        report = run(graph, book)

        assert [o.node_id for o in report] == ["slow", "fast"]

    def test_every_node_gets_exactly_one_outcome(self):
        graph = ServiceGraph(name="g", nodes=[
            node("store"), node("cache"), node("app", ["store", "cache"]), node("worker", ["cache"]),
        ])
        book = ProbeBook({
            "store": [NOT_READY], "cache": [True], "app": [True], "worker": [True],
        })

        report = run(graph, book)

        assert sorted(o.node_id for o in report) == ["app", "cache", "store", "worker"]

    def test_probe_factory_failure_becomes_action_failed(self):
        graph = ServiceGraph(name="g", nodes=[node("store"), node("app", ["store"])])

        def factory(node_def, timeout_seconds):
            if node_def.node_id == "store":
                raise KeyError("No probe registered for kind 'tcp'")
            return ScriptedProbe(node_def.node_id, [True], [])

        report = asyncio.run(
            Orchestrator(probe_factory=factory, default_policy=FAST).run(graph)
        )

        assert report.get("store").status == OutcomeStatus.ACTION_FAILED
        assert "KeyError" in report.get("store").detail
        assert report.get("app").status == OutcomeStatus.SKIPPED


# ============================================================================
# ONE-SHOT ACTIONS
# ============================================================================

class TestActions:
    """Migration-style actions."""

    def test_action_runs_once_after_ready(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"),
            node("migrate", ["store"], action="bin/rails db:migrate"),
            node("app", ["migrate"]),
        ])
        book = ProbeBook({"store": [True], "migrate": [NOT_READY, True], "app": [True]})
        actions = RecordingActionRunner()

        report = run(graph, book, action_runner=actions)

        assert actions.calls == ["bin/rails db:migrate"]
        migrate = report.get("migrate")
        assert migrate.status == OutcomeStatus.READY
        assert migrate.action_ran is True
        assert report.success

    def test_action_failure_skips_dependents(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"),
            node("migrate", ["store"], action="bin/rails db:migrate"),
            node("app", ["migrate"]),
        ])
        book = ProbeBook({"store": [True], "migrate": [True], "app": [True]})
        actions = RecordingActionRunner(fail=True)

        report = run(graph, book, action_runner=actions)

        migrate = report.get("migrate")
        assert migrate.status == OutcomeStatus.ACTION_FAILED
        assert migrate.action_ran is True
        assert "relation missing" in migrate.detail
        assert report.get("app").status == OutcomeStatus.SKIPPED
        assert book.calls("app") == 0
        assert len(actions.calls) == 1

    def test_action_not_run_when_node_never_ready(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("migrate", action="bin/rails db:migrate"),
        ])
        book = ProbeBook({"migrate": [NOT_READY]})
        actions = RecordingActionRunner()

        report = run(graph, book, action_runner=actions)

        assert report.get("migrate").status == OutcomeStatus.TIMED_OUT
        assert actions.calls == []


# ============================================================================
# CONCURRENCY
# ============================================================================

class TestConcurrency:
    """Independent nodes overlap; sequential mode does not."""

    SLOW = RetryPolicy(
        max_attempts=5, delay_seconds=0.2, deadline_seconds=10, attempt_timeout_seconds=1,
    )

    def graph(self):
        return ServiceGraph(name="g", nodes=[node("a"), node("b")])

    def scripts(self):
        return {"a": [NOT_READY, NOT_READY, True], "b": [NOT_READY, NOT_READY, True]}

    def test_independent_nodes_overlap(self):
        book = ProbeBook(self.scripts())
        report = run(self.graph(), book, default_policy=self.SLOW)

        assert report.success
        # Each node needs ~0.4s; serialized they would need ~0.8s
        assert book.first_call("b") < book.last_call("a")
        assert report.duration_ms < 700

    def test_sequential_mode_serializes(self):
        book = ProbeBook(self.scripts())
        report = run(self.graph(), book, default_policy=self.SLOW, concurrent=False)

        assert report.success
        assert book.first_call("b") >= book.last_call("a")

    def test_max_parallel_one_serializes_probing(self):
        book = ProbeBook(self.scripts())
        report = run(self.graph(), book, default_policy=self.SLOW, max_parallel=1)

        assert report.success
        assert book.first_call("b") >= book.last_call("a")


# ============================================================================
# CANCELLATION
# ============================================================================

class TestCancellation:
    """Operator interrupt and overall deadline."""

    LONG = RetryPolicy(
        max_attempts=10, delay_seconds=5, deadline_seconds=60, attempt_timeout_seconds=1,
    )

    def test_cancel_mid_retry(self):
        graph = ServiceGraph(name="rails", nodes=[node("store"), node("app", ["store"])])
        book = ProbeBook({"store": [NOT_READY], "app": [True]})

        async def scenario():
            orchestrator = Orchestrator(probe_factory=book, default_policy=self.LONG)
            asyncio.get_running_loop().call_later(0.05, orchestrator.cancel, "received SIGINT")
            return await orchestrator.run(graph)

        report = asyncio.run(scenario())

        assert report.get("store").status == OutcomeStatus.CANCELLED
        assert report.get("app").status == OutcomeStatus.SKIPPED
        assert report.cancelled is True
        assert report.cancel_reason == "received SIGINT"
        assert report.exit_code == ExitCode.CANCELLED
        assert report.duration_ms < 2000

    def test_unstarted_node_with_ready_dependencies_is_cancelled(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"), node("cache"), node("app", ["store"]),
        ])
        book = ProbeBook({"store": [True], "cache": [NOT_READY], "app": [True]})

        async def scenario():
            orchestrator = Orchestrator(
                probe_factory=book, default_policy=self.LONG, concurrent=False,
            )
            asyncio.get_running_loop().call_later(0.05, orchestrator.cancel)
            return await orchestrator.run(graph)

        report = asyncio.run(scenario())

        assert report.statuses() == [
            ("store", OutcomeStatus.READY),
            ("cache", OutcomeStatus.CANCELLED),
            ("app", OutcomeStatus.CANCELLED),
        ]
        assert book.calls("app") == 0

    def test_cancel_during_slow_action(self):
        graph = ServiceGraph(name="rails", nodes=[
            node("store"),
            node("migrate", ["store"], action="bin/rails db:migrate"),
            node("app", ["migrate"]),
        ])
        book = ProbeBook({"store": [True], "migrate": [True], "app": [True]})
        actions = RecordingActionRunner(delay=5)

        async def scenario():
            orchestrator = Orchestrator(
                probe_factory=book, action_runner=actions, default_policy=self.LONG,
            )
            asyncio.get_running_loop().call_later(0.05, orchestrator.cancel, "received SIGINT")
            return await orchestrator.run(graph)

        report = asyncio.run(scenario())

        migrate = report.get("migrate")
        assert migrate.status == OutcomeStatus.CANCELLED
        assert migrate.detail == "cancelled during one-shot action"
        assert report.get("app").status == OutcomeStatus.SKIPPED
        assert book.calls("app") == 0
        assert len(actions.calls) == 1
        assert report.cancelled is True
        assert report.duration_ms < 2000

    def test_no_action_started_after_cancel(self):
        migrate = node("migrate", action="bin/rails db:migrate")
        actions = RecordingActionRunner()
        orchestrator = Orchestrator(
            probe_factory=ProbeBook({}), action_runner=actions, default_policy=FAST,
        )
        orchestrator.cancel()

        outcome = asyncio.run(orchestrator._run_action(migrate, NodeOutcome.ready("migrate", 1)))

        assert outcome.status == OutcomeStatus.CANCELLED
        assert outcome.detail == "cancelled before one-shot action"
        assert outcome.action_ran is False
        assert actions.calls == []

    def test_overall_deadline_cancels_run(self):
        graph = ServiceGraph(name="rails", nodes=[node("store")])
        book = ProbeBook({"store": [NOT_READY]})

        report = run(graph, book, default_policy=self.LONG, overall_deadline_seconds=0.1)

        assert report.get("store").status == OutcomeStatus.CANCELLED
        assert report.cancelled is True
        assert "overall deadline" in report.cancel_reason

    def test_first_cancel_reason_wins(self):
        orchestrator = Orchestrator(probe_factory=ProbeBook({}), default_policy=FAST)
        orchestrator.cancel("received SIGTERM")
        orchestrator.cancel("received SIGINT")
        assert orchestrator.is_cancelled
        assert orchestrator._cancel_reason == "received SIGTERM"


# ============================================================================
# BRING-UP
# ============================================================================

class TestBringUp:
    """Graph-level bring-up command."""

    def test_bring_up_runs_command(self):
        graph = ServiceGraph(
            name="rails",
            bring_up=ActionSpec(command="docker compose up -d"),
            nodes=[node("store")],
        )
        actions = RecordingActionRunner()
        orchestrator = Orchestrator(
            probe_factory=ProbeBook({}), action_runner=actions, default_policy=FAST,
        )

        assert asyncio.run(orchestrator.bring_up(graph)) is True
        assert actions.calls == ["docker compose up -d"]

    def test_no_bring_up_is_noop(self):
        graph = ServiceGraph(name="rails", nodes=[node("store")])
        orchestrator = Orchestrator(probe_factory=ProbeBook({}), default_policy=FAST)
        assert asyncio.run(orchestrator.bring_up(graph)) is False

    def test_bring_up_failure_raises(self):
        graph = ServiceGraph(
            name="rails",
            bring_up=ActionSpec(command="docker compose up -d"),
            nodes=[node("store")],
        )
        orchestrator = Orchestrator(
            probe_factory=ProbeBook({}),
            action_runner=RecordingActionRunner(fail=True),
            default_policy=FAST,
        )
        with pytest.raises(ActionError):
            asyncio.run(orchestrator.bring_up(graph))
