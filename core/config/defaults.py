# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for retry policy and orchestration limits
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for readiness polling and orchestration.
These can be overridden via environment variables, and per node in the
graph file.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access

Connection targets and credentials are NOT defaulted here. Graph files
reference them as {{ env.POSTGRES_PASSWORD }} etc.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from core.models.graph import ConfigurationError, RetryPolicy


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RetryDefaults:
    """
    Defaults for the per-node retry policy.

    30 attempts x 2 seconds with a 5 second per-attempt timeout, as the
    provisioning scripts used for local container startup.
    """
    max_attempts: int = 30
    delay_seconds: float = 2.0
    deadline_seconds: float = 90.0
    attempt_timeout_seconds: float = 5.0

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay_seconds=self.delay_seconds,
            deadline_seconds=self.deadline_seconds,
            attempt_timeout_seconds=self.attempt_timeout_seconds,
        )

    @classmethod
    def from_env(cls) -> "RetryDefaults":
        """Create from environment variables."""
        return cls(
            max_attempts=int(os.getenv("STARTUP_MAX_ATTEMPTS", 30)),
            delay_seconds=float(os.getenv("STARTUP_RETRY_DELAY_SECONDS", 2.0)),
            deadline_seconds=float(os.getenv("STARTUP_DEADLINE_SECONDS", 90.0)),
            attempt_timeout_seconds=float(os.getenv("STARTUP_ATTEMPT_TIMEOUT_SECONDS", 5.0)),
        )


@dataclass(frozen=True)
class OrchestratorDefaults:
    """
    Defaults for a whole orchestration run.

    overall_deadline_seconds of 0 disables the run-wide deadline.
    """
    graph_file: Optional[str] = None
    env_file: str = ".env"
    overall_deadline_seconds: float = 600.0
    max_parallel: int = 8
    concurrent: bool = True

    @property
    def overall_deadline(self) -> Optional[float]:
        return self.overall_deadline_seconds or None

    @classmethod
    def from_env(cls) -> "OrchestratorDefaults":
        """Create from environment variables."""
        return cls(
            graph_file=os.getenv("STARTUP_GRAPH_FILE") or None,
            env_file=os.getenv("STARTUP_ENV_FILE", ".env"),
            overall_deadline_seconds=float(os.getenv("STARTUP_OVERALL_DEADLINE_SECONDS", 600.0)),
            max_parallel=int(os.getenv("STARTUP_MAX_PARALLEL", 8)),
            concurrent=_env_bool("STARTUP_CONCURRENT", True),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    retry: RetryDefaults = field(default_factory=RetryDefaults)
    orchestrator: OrchestratorDefaults = field(default_factory=OrchestratorDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            retry=RetryDefaults.from_env(),
            orchestrator=OrchestratorDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """
    Get global defaults instance.

    Raises:
        ConfigurationError: a STARTUP_* value is not a number, or the retry
            defaults break the RetryPolicy budget
    """
    global _defaults
    if _defaults is None:
        try:
            defaults = Defaults.from_env()
            defaults.retry.to_policy()
        except ValueError as e:
            raise ConfigurationError(f"Invalid STARTUP_* environment: {e}") from e
        _defaults = defaults
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


def load_env_file(path: Optional[str] = None) -> bool:
    """
    Load KEY=VALUE pairs from an env file into os.environ.

    Variables already set in the real environment win.

    Returns:
        True if a file was found and loaded
    """
    path = path or os.getenv("STARTUP_ENV_FILE", ".env")
    if not os.path.isfile(path):
        return False
    loaded = load_dotenv(path, override=False)
    reset_defaults()
    return loaded


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "RetryDefaults",
    "OrchestratorDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
    "load_env_file",
]
