# ============================================================================
# STARTUP ORCHESTRATOR - COMMAND LINE ENTRY POINT
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - CLI entry point
# PURPOSE: Bring up the stack, wait for readiness, report, exit
# CREATED: 19 OCT 2026
# ============================================================================
"""
Startup Orchestrator CLI

1. Load .env (never overriding the real environment)
2. Load and validate the service graph
3. Pre-flight: required tools and variables
4. Bring-up command (docker compose up -d)
5. Wait for every service in dependency order, run migrations once
6. Print the report and exit

Exit codes:
    0   every service ready
    1   at least one service not ready
    2   configuration error (nothing was probed)
    3   bring-up command failed
    130 cancelled (SIGINT/SIGTERM or overall deadline)

Usage:
    stackboot
    stackboot --graph stacks/default.yaml --format json
"""

import argparse
import asyncio
import os
import signal
import sys
from typing import List, Optional

from __version__ import __version__
from core.config import get_defaults, load_env_file
from core.contracts import ExitCode
from core.logging import configure_logging, get_logger
from core.models.graph import ConfigurationError
from orchestrator import ActionError, Orchestrator, RunCancelled
from orchestrator.engine import topological_order
from services import GraphService, PreflightChecker, exit_code_for, render_json, render_summary

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackboot",
        description="Bring up a service stack and wait until every service is ready",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stackboot                                   # Bundled Rails stack
  stackboot --graph stacks/default.yaml       # Explicit graph file
  stackboot --skip-bring-up --format json     # Only check an already running stack

Environment Variables:
  STARTUP_MAX_ATTEMPTS              Probe attempts per service (default: 30)
  STARTUP_RETRY_DELAY_SECONDS       Delay between attempts (default: 2)
  STARTUP_DEADLINE_SECONDS          Wall-clock budget per service (default: 90)
  STARTUP_ATTEMPT_TIMEOUT_SECONDS   Timeout of one probe call (default: 5)
  STARTUP_OVERALL_DEADLINE_SECONDS  Budget for the whole run, 0 disables (default: 600)
  STARTUP_GRAPH_FILE                Graph file when --graph is not given
  STARTUP_ENV_FILE                  Env file when --env-file is not given (default: .env)
  LOG_LEVEL / LOG_FORMAT            Logging level / 'json' for structured logs
        """,
    )
    parser.add_argument("--graph", type=str, help="Service graph YAML file")
    parser.add_argument("--env-file", type=str, help="Env file to load before anything else")
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format (default: text)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Probe one service at a time",
    )
    parser.add_argument(
        "--skip-bring-up",
        action="store_true",
        help="Do not run the graph's bring-up command",
    )
    parser.add_argument(
        "--skip-preflight",
        action="store_true",
        help="Do not check required tools and variables",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, orchestrator: Orchestrator
) -> List[int]:
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.cancel, f"received {sig.name}")
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Cannot install handler for {sig.name} on this platform")
    return installed


async def orchestrate(args: argparse.Namespace) -> int:
    """
    Run one startup pass.

    Raises:
        ConfigurationError: environment, graph file or graph ordering is invalid
    """
    defaults = get_defaults()
    graph = GraphService().load(args.graph or defaults.orchestrator.graph_file)
    # Reject cycles before anything is started
    topological_order(graph)

    if not args.skip_preflight:
        preflight = await PreflightChecker().run(graph.preflight)
        if not preflight.valid:
            print(preflight.summary(), file=sys.stderr)
            return int(ExitCode.CONFIGURATION_ERROR)

    overrides = {"concurrent": False} if args.sequential else {}
    orchestrator = Orchestrator.from_defaults(**overrides)

    loop = asyncio.get_running_loop()
    installed = _install_signal_handlers(loop, orchestrator)
    try:
        if not args.skip_bring_up:
            try:
                await orchestrator.bring_up(graph)
            except ActionError as e:
                logger.error(f"Bring-up failed: {e}")
                print(f"Bring-up failed: {e}", file=sys.stderr)
                return int(ExitCode.STARTUP_FAILED)
            except RunCancelled:
                print("Cancelled during bring-up", file=sys.stderr)
                return int(ExitCode.CANCELLED)

        report = await orchestrator.run(graph)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    if args.format == "json":
        print(render_json(report))
    else:
        print(render_summary(report, graph))
    return exit_code_for(report)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run, and return the process exit code."""
    args = build_parser().parse_args(argv)

    load_env_file(args.env_file)
    configure_logging(
        level="DEBUG" if args.verbose else os.environ.get("LOG_LEVEL", "INFO"),
        json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
        # Keep stdout clean for the JSON report
        stream=sys.stderr if args.format == "json" else sys.stdout,
    )
    logger.info(f"stackboot {__version__}")

    try:
        return int(asyncio.run(orchestrate(args)))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return int(ExitCode.CONFIGURATION_ERROR)
    except KeyboardInterrupt:
        return int(ExitCode.CANCELLED)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
