# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Service layer
# PURPOSE: Graph loading, pre-flight checks, report presentation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Everything around an orchestration run: loading the graph file,
checking the host beforehand, and presenting the report afterwards.

Usage:
    from services import GraphService, render_summary

    graph = GraphService().load("stacks/default.yaml")
"""

from .graph_service import DEFAULT_GRAPH_FILE, GraphService
from .preflight import PreflightChecker, PreflightResult
from .report_service import exit_code_for, render_json, render_summary

__all__ = [
    "DEFAULT_GRAPH_FILE",
    "GraphService",
    "PreflightChecker",
    "PreflightResult",
    "render_json",
    "render_summary",
    "exit_code_for",
]
