# ============================================================================
# REPORT SERVICE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Service - Health report presentation
# PURPOSE: Render HealthReports for operators and machines
# CREATED: 19 OCT 2026
# ============================================================================
"""
Report Service

Presentation of a HealthReport:
- render_json: stable machine-readable output (sorted keys, 2-space indent,
  nodes in processing order)
- render_summary: one line per node, overall verdict, cancel reason, and the
  operator links (application, dashboards) once everything is ready
- exit_code_for: 0 iff every node is ready, 130 if cancelled, 1 otherwise
"""

import json
from typing import List, Optional

from core.contracts import OutcomeStatus
from core.models.graph import ServiceGraph
from core.models.report import HealthReport, NodeOutcome

RULE = "=" * 70

STATUS_MARKERS = {
    OutcomeStatus.READY: "✅",
    OutcomeStatus.TIMED_OUT: "⏱️",
    OutcomeStatus.ACTION_FAILED: "❌",
    OutcomeStatus.SKIPPED: "⏭️",
    OutcomeStatus.CANCELLED: "🛑",
}


def render_json(report: HealthReport) -> str:
    """Serialize a report as stable JSON."""
    return json.dumps(report.to_dict(), indent=2, sort_keys=True)


def _format_duration(duration_ms: float) -> str:
    if duration_ms < 1000:
        return f"{duration_ms:.0f}ms"
    return f"{duration_ms / 1000:.1f}s"


def _format_outcome(outcome: NodeOutcome, width: int) -> str:
    marker = STATUS_MARKERS.get(outcome.status, "❓")
    attempts = f"{outcome.attempts} attempt{'' if outcome.attempts == 1 else 's'}"
    line = (
        f"{marker} {outcome.node_id:<{width}}  {outcome.status.value:<13}  "
        f"{attempts:<12}  {_format_duration(outcome.duration_ms):>7}"
    )
    if outcome.action_ran:
        line += "  [action ran]"
    if outcome.detail:
        line += f"\n   {outcome.detail}"
    return line


def render_summary(report: HealthReport, graph: Optional[ServiceGraph] = None) -> str:
    """
    Human-readable summary.

    Args:
        report: Result of an orchestration run
        graph: The graph that was run; supplies operator links

    Returns:
        Multi-line text
    """
    lines: List[str] = [RULE, f"{report.graph_name} - startup report", RULE]

    width = max((len(o.node_id) for o in report.outcomes), default=4)
    lines.extend(_format_outcome(o, width) for o in report.outcomes)

    lines.append(RULE)
    if report.success:
        lines.append(
            f"✅ All {len(report)} services ready in {_format_duration(report.duration_ms)}"
        )
    else:
        counts = {}
        for outcome in report.outcomes:
            counts[outcome.status.value] = counts.get(outcome.status.value, 0) + 1
        breakdown = ", ".join(f"{n} {status}" for status, n in counts.items())
        lines.append(f"❌ Startup failed ({breakdown})")
        if report.cancelled:
            lines.append(f"   Cancelled: {report.cancel_reason or 'no reason given'}")

    if report.success and graph is not None:
        links = [
            (label, url)
            for node in graph.nodes
            for label, url in node.links.items()
        ]
        if links:
            lines.append("")
            lines.append("Endpoints:")
            label_width = max(len(label) for label, _ in links)
            lines.extend(f"  - {label:<{label_width}}  {url}" for label, url in links)

    lines.append(RULE)
    return "\n".join(lines)


def exit_code_for(report: HealthReport) -> int:
    """Process exit code for a report."""
    return int(report.exit_code)


__all__ = [
    "render_json",
    "render_summary",
    "exit_code_for",
    "STATUS_MARKERS",
]
