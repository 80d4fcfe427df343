# ============================================================================
# RETRY WAITER
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Bounded constant-delay readiness polling
# PURPOSE: Poll one node's probe until ready, exhausted, broken or cancelled
# CREATED: 19 OCT 2026
# ============================================================================
"""
Retry Waiter

Drives a ReadinessProbe under a RetryPolicy:

    attempt = 0
    loop:
        attempt += 1, call probe (bounded by attempt_timeout_seconds)
        ready               -> READY
        unrecoverable error -> ACTION_FAILED (no further attempts)
        attempt == max      -> TIMED_OUT (no trailing sleep)
        next sleep passes deadline -> TIMED_OUT
        sleep delay_seconds (constant, not exponential)

The stop event aborts both the sleep and an in-flight probe call, so a
cancellation is observed within one poll interval and reported as
CANCELLED rather than TIMED_OUT.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from core.logging import log_context, log_checkpoint
from core.models.graph import NodeDefinition, RetryPolicy
from core.models.report import NodeOutcome
from probes.core import ReadinessProbe, ProbeNotReady, ProbeConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunCancelled(Exception):
    """The stop event fired while an operation was in flight."""
    pass


async def run_unless_stopped(aw: Awaitable[T], stop_event: asyncio.Event) -> T:
    """
    Await aw, abandoning it as soon as stop_event is set.

    The abandoned operation is cancelled and awaited, so subprocesses and
    connections it owns are cleaned up before this returns.

    Raises:
        RunCancelled: stop_event was set first
    """
    work = asyncio.ensure_future(aw)
    stop = asyncio.ensure_future(stop_event.wait())
    try:
        done, _ = await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
        if not work.done():
            work.cancel()

    if work in done:
        return work.result()

    await asyncio.gather(work, return_exceptions=True)
    raise RunCancelled()


class RetryWaiter:
    """
    Polls a node's probe until a terminal outcome.

    One waiter may serve many nodes concurrently; it holds no per-node state.
    """

    def __init__(self, stop_event: Optional[asyncio.Event] = None):
        self.stop_event = stop_event or asyncio.Event()

    async def wait_until_ready(
        self,
        node: NodeDefinition,
        policy: RetryPolicy,
        probe: ReadinessProbe,
    ) -> NodeOutcome:
        """
        Wait for one node.

        Returns:
            NodeOutcome with status READY, TIMED_OUT, ACTION_FAILED or CANCELLED
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempts = 0
        last_error: Optional[str] = None

        def elapsed_ms() -> float:
            return (loop.time() - started) * 1000

        logger.info(f"Waiting for {node.node_id} ({probe.spec.kind.family.value}: {probe.target})")

        while True:
            if self.stop_event.is_set():
                return NodeOutcome.cancelled(
                    node.node_id, attempts, "cancelled while waiting", elapsed_ms()
                )

            attempts += 1
            with log_context(node_id=node.node_id, attempt=attempts):
                try:
                    ready = await run_unless_stopped(
                        asyncio.wait_for(probe.check(), timeout=policy.attempt_timeout_seconds),
                        self.stop_event,
                    )
                    if not ready:
                        last_error = "probe reported not ready"
                except RunCancelled:
                    logger.warning(f"{node.node_id}: cancelled during attempt {attempts}")
                    return NodeOutcome.cancelled(
                        node.node_id, attempts, "cancelled during probe", elapsed_ms()
                    )
                except ProbeConfigurationError as e:
                    logger.error(f"{node.node_id} is misconfigured: {e}")
                    return NodeOutcome.action_failed(
                        node.node_id, str(e), attempts=attempts, duration_ms=elapsed_ms()
                    )
                except ProbeNotReady as e:
                    ready = False
                    last_error = str(e)
                except asyncio.TimeoutError:
                    ready = False
                    last_error = f"probe timed out after {policy.attempt_timeout_seconds:g}s"
                except Exception as e:
                    # Unknown probe failures are retried like any not-ready answer
                    logger.debug(f"{node.node_id}: probe raised {type(e).__name__}", exc_info=True)
                    ready = False
                    last_error = f"{type(e).__name__}: {e}"

                if ready:
                    logger.info(f"{node.node_id} is ready (attempt {attempts})")
                    log_checkpoint("node_ready", {"attempts": attempts})
                    return NodeOutcome.ready(node.node_id, attempts, elapsed_ms())

                if attempts >= policy.max_attempts:
                    logger.error(
                        f"{node.node_id} did not become ready after {attempts} attempts: {last_error}"
                    )
                    return NodeOutcome.timed_out(
                        node.node_id, attempts,
                        f"not ready after {attempts} attempts: {last_error}",
                        elapsed_ms(),
                    )

                if loop.time() - started + policy.delay_seconds >= policy.deadline_seconds:
                    logger.error(
                        f"{node.node_id} deadline of {policy.deadline_seconds:g}s reached "
                        f"after {attempts} attempts: {last_error}"
                    )
                    return NodeOutcome.timed_out(
                        node.node_id, attempts,
                        f"deadline of {policy.deadline_seconds:g}s reached: {last_error}",
                        elapsed_ms(),
                    )

                logger.info(
                    f"Waiting for {node.node_id} to be ready... "
                    f"({attempts}/{policy.max_attempts}) {last_error}"
                )

            if await self._sleep(policy.delay_seconds):
                return NodeOutcome.cancelled(
                    node.node_id, attempts, "cancelled while waiting", elapsed_ms()
                )

    async def _sleep(self, delay: float) -> bool:
        """
        Sleep for delay, waking early on stop.

        Returns:
            True if the stop event was set
        """
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False


__all__ = [
    "RetryWaiter",
    "RunCancelled",
    "run_unless_stopped",
]
