# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Foundation - Core enums
# PURPOSE: Probe kinds, outcome states and process exit codes
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ProbeKind, ProbeFamily, OutcomeStatus, ExitCode
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the startup orchestrator.

These values cross boundaries:
- Graph files (YAML probe kinds)
- Health report output (JSON status strings)
- Process exit code (automation)
"""

from enum import Enum, IntEnum


# ============================================================================
# PROBE KINDS
# ============================================================================

class ProbeFamily(str, Enum):
    """How a readiness check reaches its target."""
    TCP_PING = "tcp-ping"
    PROTOCOL_PING = "protocol-ping"
    HTTP_GET = "http-get"
    COMMAND = "command"


class ProbeKind(str, Enum):
    """
    Readiness probe variants.

    Each kind carries the parameters needed for one readiness check
    (see ProbeSpec in core.models.graph).
    """
    TCP = "tcp"                # Port accepts connections
    POSTGRES = "postgres"      # Data store answers SELECT 1
    REDIS = "redis"            # Cache answers PING
    HTTP = "http"              # Health endpoint returns 2xx
    COMMAND = "command"        # Command exits 0 (e.g. pg_isready via exec)

    @property
    def family(self) -> ProbeFamily:
        """Probe family for this kind."""
        families = {
            ProbeKind.TCP: ProbeFamily.TCP_PING,
            ProbeKind.POSTGRES: ProbeFamily.PROTOCOL_PING,
            ProbeKind.REDIS: ProbeFamily.PROTOCOL_PING,
            ProbeKind.HTTP: ProbeFamily.HTTP_GET,
            ProbeKind.COMMAND: ProbeFamily.COMMAND,
        }
        return families[self]


# ============================================================================
# OUTCOMES
# ============================================================================

class OutcomeStatus(str, Enum):
    """
    Terminal outcome of one node in an orchestration run.

    Every node ends in exactly one of these. Only READY is successful.
    """
    READY = "ready"                    # Probe succeeded (and action, if any)
    TIMED_OUT = "timed_out"            # Retries exhausted, still not ready
    ACTION_FAILED = "action_failed"    # Unrecoverable probe error or action failure
    SKIPPED = "skipped"                # A dependency did not reach READY
    CANCELLED = "cancelled"            # Run cancelled before the node resolved

    def is_successful(self) -> bool:
        """Check if this represents a ready node."""
        return self is OutcomeStatus.READY


class ExitCode(IntEnum):
    """Process exit codes for the command-line entry point."""
    OK = 0
    UNHEALTHY = 1
    CONFIGURATION_ERROR = 2
    STARTUP_FAILED = 3
    CANCELLED = 130


__all__ = [
    "ProbeFamily",
    "ProbeKind",
    "OutcomeStatus",
    "ExitCode",
]
