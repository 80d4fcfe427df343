# ============================================================================
# HEALTH REPORT MODEL
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core model - Run outcomes
# PURPOSE: Per-node outcomes and the consolidated health verdict
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: NodeOutcome, HealthReport
# DEPENDENCIES: dataclasses
# ============================================================================
"""
Health Report Models

NodeOutcome is recorded exactly once per node per run and never mutated.
HealthReport is created at the end of a run from the outcomes in processing
order and consumed by the printing / exit-code layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from core.contracts import ExitCode, OutcomeStatus


@dataclass(frozen=True)
class NodeOutcome:
    """Terminal outcome for one node."""
    node_id: str
    status: OutcomeStatus
    attempts: int = 0
    detail: Optional[str] = None
    duration_ms: float = 0.0
    action_ran: bool = False

    @property
    def is_ready(self) -> bool:
        return self.status.is_successful()

    @classmethod
    def ready(cls, node_id: str, attempts: int, duration_ms: float = 0.0) -> "NodeOutcome":
        return cls(node_id, OutcomeStatus.READY, attempts=attempts, duration_ms=duration_ms)

    @classmethod
    def timed_out(
        cls, node_id: str, attempts: int, detail: str = None, duration_ms: float = 0.0
    ) -> "NodeOutcome":
        return cls(
            node_id, OutcomeStatus.TIMED_OUT,
            attempts=attempts, detail=detail, duration_ms=duration_ms,
        )

    @classmethod
    def action_failed(
        cls, node_id: str, detail: str, attempts: int = 0, duration_ms: float = 0.0,
        action_ran: bool = False,
    ) -> "NodeOutcome":
        return cls(
            node_id, OutcomeStatus.ACTION_FAILED,
            attempts=attempts, detail=detail, duration_ms=duration_ms,
            action_ran=action_ran,
        )

    @classmethod
    def skipped(cls, node_id: str, detail: str) -> "NodeOutcome":
        return cls(node_id, OutcomeStatus.SKIPPED, detail=detail)

    @classmethod
    def cancelled(
        cls, node_id: str, attempts: int = 0, detail: str = None, duration_ms: float = 0.0
    ) -> "NodeOutcome":
        return cls(
            node_id, OutcomeStatus.CANCELLED,
            attempts=attempts, detail=detail, duration_ms=duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result = {
            "node": self.node_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.detail:
            result["detail"] = self.detail
        if self.action_ran:
            result["action_ran"] = True
        return result


@dataclass(frozen=True)
class HealthReport:
    """
    Consolidated result of one orchestration run.

    Outcomes are ordered by the pre-computed topological order, not by
    completion time, so output is reproducible.
    """
    graph_name: str
    outcomes: Tuple[NodeOutcome, ...]
    cancelled: bool = False
    cancel_reason: Optional[str] = None
    duration_ms: float = 0.0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        """True iff every node is READY."""
        return all(o.is_ready for o in self.outcomes)

    @property
    def exit_code(self) -> ExitCode:
        if self.success:
            return ExitCode.OK
        if self.cancelled:
            return ExitCode.CANCELLED
        return ExitCode.UNHEALTHY

    def __iter__(self) -> Iterator[NodeOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def get(self, node_id: str) -> Optional[NodeOutcome]:
        for outcome in self.outcomes:
            if outcome.node_id == node_id:
                return outcome
        return None

    def statuses(self) -> List[Tuple[str, OutcomeStatus]]:
        """(node, status) pairs in processing order."""
        return [(o.node_id, o.status) for o in self.outcomes]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result = {
            "graph": self.graph_name,
            "success": self.success,
            "nodes": [o.to_dict() for o in self.outcomes],
            "started_at": self.started_at.isoformat(),
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.cancelled:
            result["cancelled"] = True
            result["cancel_reason"] = self.cancel_reason
        return result


__all__ = [
    "NodeOutcome",
    "HealthReport",
]
