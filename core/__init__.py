# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import ProbeKind, ProbeFamily, OutcomeStatus, ExitCode
from core.models import (
    ConfigurationError,
    GraphConfigurationError,
    RetryPolicy,
    ProbeSpec,
    ActionSpec,
    NodeDefinition,
    HostCheck,
    PreflightSpec,
    ServiceGraph,
    NodeOutcome,
    HealthReport,
)

__all__ = [
    # Enums
    "ProbeKind",
    "ProbeFamily",
    "OutcomeStatus",
    "ExitCode",
    # Models
    "ConfigurationError",
    "GraphConfigurationError",
    "RetryPolicy",
    "ProbeSpec",
    "ActionSpec",
    "NodeDefinition",
    "HostCheck",
    "PreflightSpec",
    "ServiceGraph",
    "NodeOutcome",
    "HealthReport",
]
