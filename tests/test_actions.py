# ============================================================================
# ONE-SHOT ACTION TESTS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Tests - Subprocess execution
# PURPOSE: Verify ActionRunner and run_command with real subprocesses
# CREATED: 19 OCT 2026
# ============================================================================
"""
One-Shot Action Tests

Commands are run with the current interpreter so the tests do not depend
on any tool being installed.

Run with:
    pytest tests/test_actions.py -v
"""

import asyncio
import sys

import pytest

from core.models import ActionSpec
from infrastructure.process import run_command
from orchestrator.actions import ActionError, ActionRunner
from orchestrator.waiter import RunCancelled, run_unless_stopped


def py(script):
    return [sys.executable, "-c", script]


class TestRunCommand:
    """infrastructure.process.run_command."""

    def test_captures_output(self):
        result = asyncio.run(run_command(py("print('migrated')"), timeout_seconds=10))
        assert result.succeeded
        assert result.stdout.strip() == "migrated"
        assert result.duration_ms > 0

    def test_nonzero_exit_is_not_exception(self):
        result = asyncio.run(
            run_command(py("import sys; sys.stderr.write('boom'); sys.exit(3)"), timeout_seconds=10)
        )
        assert result.returncode == 3
        assert result.output_tail() == "boom"

    def test_env_is_merged(self):
        script = "import os; print(os.environ['RAILS_ENV'], 'PATH' in os.environ)"
        result = asyncio.run(run_command(py(script), timeout_seconds=10, env={"RAILS_ENV": "production"}))
        assert result.stdout.split() == ["production", "True"]

    def test_timeout_kills_child(self):
        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(run_command(py("import time; time.sleep(30)"), timeout_seconds=0.2))


class TestActionRunner:
    """ActionRunner error mapping."""

    def test_success(self):
        spec = ActionSpec(command=py("print('ok')"), description="migrate")
        result = asyncio.run(ActionRunner().run(spec))
        assert result.description == "migrate"
        assert result.output_tail == "ok"

    def test_nonzero_exit_raises_with_tail(self):
        spec = ActionSpec(
            command=py("import sys; sys.stderr.write('PG::UndefinedTable'); sys.exit(1)"),
            description="rails db:migrate",
        )
        with pytest.raises(ActionError) as exc_info:
            asyncio.run(ActionRunner().run(spec))
        assert exc_info.value.returncode == 1
        assert "rails db:migrate" in str(exc_info.value)
        assert "PG::UndefinedTable" in str(exc_info.value)

    def test_missing_executable(self):
        spec = ActionSpec(command=["/nonexistent/bin/rails", "db:migrate"])
        with pytest.raises(ActionError, match="Cannot run"):
            asyncio.run(ActionRunner().run(spec))

    def test_missing_working_directory_is_named(self, tmp_path):
        missing = tmp_path / "missing"
        spec = ActionSpec(command=py("pass"), cwd=str(missing))
        with pytest.raises(ActionError, match="Working directory") as exc_info:
            asyncio.run(ActionRunner().run(spec))
        assert str(missing) in str(exc_info.value)

    def test_timeout(self):
        spec = ActionSpec(command=py("import time; time.sleep(30)"), timeout_seconds=0.2)
        with pytest.raises(ActionError, match="did not finish"):
            asyncio.run(ActionRunner().run(spec))

    def test_cancellation_stops_action(self):
        spec = ActionSpec(command=py("import time; time.sleep(30)"))

        async def scenario():
            loop = asyncio.get_running_loop()
            stop = asyncio.Event()
            loop.call_later(0.2, stop.set)
            started = loop.time()
            with pytest.raises(RunCancelled):
                await run_unless_stopped(ActionRunner().run(spec), stop)
            return loop.time() - started

        assert asyncio.run(scenario()) < 5
