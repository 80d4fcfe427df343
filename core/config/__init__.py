# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the startup orchestrator.
"""

from core.config.defaults import (
    RetryDefaults,
    OrchestratorDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
    load_env_file,
)

__all__ = [
    "RetryDefaults",
    "OrchestratorDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
    "load_env_file",
]
