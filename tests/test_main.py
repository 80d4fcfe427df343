# ============================================================================
# COMMAND LINE TESTS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Tests - CLI entry point
# PURPOSE: Verify argument handling and exit codes end to end
# CREATED: 19 OCT 2026
# ============================================================================
"""
Command Line Tests

The graph files used here probe a command run by the current interpreter,
so no services are needed.

Run with:
    pytest tests/test_main.py -v
"""

import json
import logging
import sys
import textwrap

import pytest

import main
from core.config import reset_defaults


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setenv("STARTUP_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("STARTUP_RETRY_DELAY_SECONDS", "0.01")
    monkeypatch.setenv("STARTUP_DEADLINE_SECONDS", "5")
    monkeypatch.setenv("STARTUP_OVERALL_DEADLINE_SECONDS", "0")
    reset_defaults()
    yield
    reset_defaults()


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def write_graph(tmp_path):
    def _write(text):
        path = tmp_path / "graph.yaml"
        path.write_text(textwrap.dedent(text))
        return str(path)
    return _write


def command(exit_code):
    return json.dumps([sys.executable, "-c", f"import sys; sys.exit({exit_code})"])


def run_main(*argv, env_file):
    return main.main([*argv, "--env-file", env_file])


@pytest.fixture
def no_env(tmp_path):
    return str(tmp_path / "absent.env")


class TestParser:
    """Argument parsing."""

    def test_defaults(self):
        args = main.build_parser().parse_args([])
        assert args.graph is None
        assert args.format == "text"
        assert not args.sequential

    def test_rejects_unknown_format(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["--format", "xml"])


class TestExitCodes:
    """End-to-end runs with command probes."""

    def test_all_ready_exits_zero(self, write_graph, no_env, capsys):
        path = write_graph(f"""
            name: ok
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
              app:
                depends_on: [store]
                probe: {{kind: command, command: {command(0)}}}
        """)
        code = run_main("--graph", path, "--skip-bring-up", "--format", "json", env_file=no_env)

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert [n["status"] for n in report["nodes"]] == ["ready", "ready"]

    def test_not_ready_exits_one(self, write_graph, no_env, capsys):
        path = write_graph(f"""
            name: bad
            nodes:
              store:
                probe: {{kind: command, command: {command(1)}}}
              app:
                depends_on: [store]
                probe: {{kind: command, command: {command(0)}}}
        """)
        code = run_main("--graph", path, "--skip-bring-up", "--sequential", env_file=no_env)

        assert code == 1
        out = capsys.readouterr().out
        assert "timed_out" in out
        assert "skipped" in out

    def test_cycle_exits_two(self, write_graph, no_env):
        path = write_graph(f"""
            name: loop
            nodes:
              a: {{depends_on: [b], probe: {{kind: command, command: {command(0)}}}}}
              b: {{depends_on: [a], probe: {{kind: command, command: {command(0)}}}}}
        """)
        assert run_main("--graph", path, "--skip-bring-up", env_file=no_env) == 2

    def test_missing_graph_exits_two(self, tmp_path, no_env):
        path = str(tmp_path / "missing.yaml")
        assert run_main("--graph", path, env_file=no_env) == 2

    def test_preflight_failure_exits_two(self, write_graph, no_env, monkeypatch, capsys):
        monkeypatch.delenv("STACKBOOT_TEST_REQUIRED", raising=False)
        path = write_graph(f"""
            name: pre
            preflight:
              required_env: [STACKBOOT_TEST_REQUIRED]
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)
        code = run_main("--graph", path, "--skip-bring-up", env_file=no_env)

        assert code == 2
        assert "STACKBOOT_TEST_REQUIRED is not set" in capsys.readouterr().err

    def test_host_check_failure_exits_two(self, write_graph, no_env, capsys):
        path = write_graph(f"""
            name: pre
            preflight:
              required_checks:
                - command: {command(1)}
                  message: Docker daemon is not running. Please start Docker and try again.
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)
        code = run_main("--graph", path, "--skip-bring-up", env_file=no_env)

        assert code == 2
        assert "Docker daemon is not running" in capsys.readouterr().err

    def test_env_file_satisfies_preflight(self, write_graph, tmp_path, monkeypatch):
        monkeypatch.delenv("STACKBOOT_TEST_REQUIRED", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("STACKBOOT_TEST_REQUIRED=yes\n")
        path = write_graph(f"""
            name: pre
            preflight:
              required_env: [STACKBOOT_TEST_REQUIRED]
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)
        try:
            assert run_main("--graph", path, "--skip-bring-up", env_file=str(env_file)) == 0
        finally:
            monkeypatch.delenv("STACKBOOT_TEST_REQUIRED", raising=False)

    def test_bring_up_failure_exits_three(self, write_graph, no_env):
        path = write_graph(f"""
            name: up
            bring_up:
              command: {command(1)}
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)
        assert run_main("--graph", path, env_file=no_env) == 3

    def test_bring_up_then_probe(self, write_graph, no_env):
        path = write_graph(f"""
            name: up
            bring_up:
              command: {command(0)}
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)
        assert run_main("--graph", path, env_file=no_env) == 0


class TestEnvironmentErrors:
    """Bad STARTUP_* values are configuration errors, not crashes."""

    @pytest.fixture
    def graph(self, write_graph):
        return write_graph(f"""
            name: ok
            nodes:
              store:
                probe: {{kind: command, command: {command(0)}}}
        """)

    def test_non_numeric_max_attempts_exits_two(self, graph, no_env, monkeypatch, capsys):
        monkeypatch.setenv("STARTUP_MAX_ATTEMPTS", "abc")
        reset_defaults()

        assert run_main("--graph", graph, "--skip-bring-up", env_file=no_env) == 2
        assert "STARTUP_" in capsys.readouterr().err

    def test_budget_over_deadline_exits_two(self, graph, no_env, monkeypatch, capsys):
        monkeypatch.setenv("STARTUP_MAX_ATTEMPTS", "100")
        monkeypatch.setenv("STARTUP_RETRY_DELAY_SECONDS", "2")
        reset_defaults()

        assert run_main("--graph", graph, "--skip-bring-up", env_file=no_env) == 2
        assert "exceeds" in capsys.readouterr().err
