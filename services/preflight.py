# ============================================================================
# PRE-FLIGHT VALIDATION
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Service - Host pre-flight validation
# PURPOSE: Check required tools and variables before anything starts
# CREATED: 19 OCT 2026
# ============================================================================
"""
Pre-flight Validation

Cheap host checks that run before the bring-up command and before any
probe:
  - required executables are on PATH (docker, curl, ...). An entry may
    list alternatives separated by '|', e.g. "docker-compose|docker".
  - required environment variables are set and non-blank
    (RAILS_MASTER_KEY, database credentials, ...)
  - required check commands exit 0 (`docker info` proves the daemon is
    up, not just that the client is installed)

PreflightResult collects ALL errors (not fail-fast on first), so the
operator fixes everything in one pass.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from core.logging import get_logger
from core.models.graph import HostCheck, PreflightSpec
from infrastructure.process import CompletedCommand, run_command

logger = get_logger(__name__)


# ============================================================================
# RESULT
# ============================================================================

@dataclass
class PreflightResult:
    """
    Result of pre-flight validation.

    Collects all errors rather than failing on the first.
    """
    valid: bool
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        if self.valid:
            return "Pre-flight checks passed"
        return "Pre-flight checks failed:\n" + "\n".join(f"  - {e}" for e in self.errors)


# ============================================================================
# CHECKER
# ============================================================================

class PreflightChecker:
    """Validates the host against a graph's PreflightSpec."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        runner: Callable[..., Awaitable[CompletedCommand]] = run_command,
    ):
        self.environ = os.environ if environ is None else environ
        self._which = which
        self._runner = runner

    def check(self, spec: PreflightSpec) -> PreflightResult:
        """
        Check executables and environment variables (no commands are run).

        Returns:
            PreflightResult with every collected error
        """
        errors: List[str] = []
        errors.extend(self._check_commands(spec.required_commands))
        errors.extend(self._check_env(spec.required_env))
        return self._result(spec, errors)

    async def run(self, spec: PreflightSpec) -> PreflightResult:
        """
        Run all pre-flight checks, including the required_checks commands.

        Returns:
            PreflightResult with every collected error
        """
        errors: List[str] = []
        errors.extend(self._check_commands(spec.required_commands))
        errors.extend(self._check_env(spec.required_env))
        errors.extend(await self._run_host_checks(spec.required_checks))
        return self._result(spec, errors)

    def _result(self, spec: PreflightSpec, errors: List[str]) -> PreflightResult:
        result = PreflightResult(valid=not errors, errors=errors)
        if result.valid:
            logger.info(
                f"Pre-flight passed ({len(spec.required_commands)} commands, "
                f"{len(spec.required_env)} variables)"
            )
        else:
            for error in errors:
                logger.error(f"Pre-flight: {error}")
        return result

    def _check_commands(self, commands) -> List[str]:
        errors = []
        for entry in commands:
            alternatives = [c.strip() for c in entry.split("|") if c.strip()]
            if not any(self._which(c) for c in alternatives):
                errors.append(f"{' or '.join(alternatives)} is required but not installed")
        return errors

    def _check_env(self, names) -> List[str]:
        errors = []
        for name in names:
            value = self.environ.get(name)
            if value is None:
                errors.append(f"{name} is not set")
            elif not value.strip():
                errors.append(f"{name} is set but empty")
        return errors

    async def _run_host_checks(self, checks: Sequence[HostCheck]) -> List[str]:
        errors = []
        for check in checks:
            command = check.describe()
            try:
                result = await self._runner(check.command, timeout_seconds=check.timeout_seconds)
            except (FileNotFoundError, PermissionError) as e:
                detail = f"cannot run: {e}"
            except asyncio.TimeoutError:
                detail = f"did not finish within {check.timeout_seconds:g}s"
            else:
                if result.succeeded:
                    continue
                tail = result.output_tail()
                detail = f"exited with {result.returncode}: {tail}" if tail else f"exited with {result.returncode}"

            logger.debug(f"Pre-flight check '{command}' {detail}")
            errors.append(check.message or f"'{command}' {detail}")
        return errors


__all__ = [
    "PreflightResult",
    "PreflightChecker",
]
