# ============================================================================
# SERVICE GRAPH MODEL
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core model - Service declaration
# PURPOSE: Services, readiness probes, one-shot actions, ready-before edges
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ServiceGraph, NodeDefinition, ProbeSpec, ActionSpec, RetryPolicy
# DEPENDENCIES: pydantic
# ============================================================================
"""
Service Graph Models

A ServiceGraph is the static declaration of a stack. It defines:
- What services (nodes) exist
- How readiness of each one is checked (probe)
- Which one-shot action runs once a node is ready (e.g. schema migration)
- Ready-before dependencies between nodes

Graphs are loaded from YAML at process start and never mutated afterwards.
"""

import shlex
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from core.contracts import ProbeKind


# Retry budget may overshoot the deadline by this factor before it is
# rejected as misconfigured.
DEADLINE_SLACK = 2.0

DEFAULT_PORTS = {
    ProbeKind.POSTGRES: 5432,
    ProbeKind.REDIS: 6379,
}


class ConfigurationError(Exception):
    """Raised when the run cannot start as configured; nothing is probed."""
    pass


class GraphConfigurationError(ConfigurationError):
    """Raised for malformed service graphs (cycles, dangling references, bad files)."""
    pass


def _split_command(v):
    """Allow a shell-style string as shorthand for an argv list."""
    if isinstance(v, str):
        return shlex.split(v)
    return v


def _as_tuple(v):
    """Allow single string as shorthand for single-item list."""
    if v is None:
        return ()
    if isinstance(v, str):
        return (v,)
    return v


# ============================================================================
# RETRY POLICY
# ============================================================================

class RetryPolicy(BaseModel):
    """
    Bounded constant-delay retry configuration for one node.

    max_attempts x delay_seconds bounds the number of probe calls;
    deadline_seconds bounds the wall-clock time of the whole wait.
    """
    max_attempts: int = Field(default=30, ge=1, le=1000)
    delay_seconds: float = Field(default=2.0, ge=0)
    deadline_seconds: float = Field(default=90.0, gt=0)
    attempt_timeout_seconds: float = Field(default=5.0, gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_budget(self) -> "RetryPolicy":
        budget = self.max_attempts * self.delay_seconds
        if budget > DEADLINE_SLACK * self.deadline_seconds:
            raise ValueError(
                f"max_attempts x delay_seconds ({budget:g}s) exceeds "
                f"{DEADLINE_SLACK:g} x deadline_seconds ({self.deadline_seconds:g}s)"
            )
        return self


# ============================================================================
# PROBE SPEC
# ============================================================================

class ProbeSpec(BaseModel):
    """
    Parameters for one readiness check.

    Only the fields relevant to `kind` are used:
    - tcp: host, port
    - postgres: host, port, user, password, database, sslmode
    - redis: host, port, password, db
    - http: url (or scheme/host/port/path), expected_status, accepted_body_statuses
    - command: command
    """
    kind: ProbeKind

    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    user: Optional[str] = None
    password: Optional[SecretStr] = None
    database: Optional[str] = None
    db: int = Field(default=0, ge=0)
    sslmode: str = "prefer"

    url: Optional[str] = None
    scheme: str = Field(default="http", pattern="^https?$")
    path: str = "/health"
    expected_status: Tuple[int, int] = (200, 299)
    accepted_body_statuses: Tuple[str, ...] = ("healthy", "ok", "up", "pass")

    command: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @field_validator("command", mode="before")
    @classmethod
    def handle_command_string(cls, v):
        return _split_command(v)

    @field_validator("expected_status")
    @classmethod
    def check_status_range(cls, v):
        low, high = v
        if not 100 <= low <= high <= 599:
            raise ValueError(f"expected_status must be an ordered HTTP range, got {v}")
        return v

    @model_validator(mode="after")
    def check_kind_fields(self) -> "ProbeSpec":
        """Each kind requires its own connection parameters."""
        missing = []
        if self.kind in (ProbeKind.TCP, ProbeKind.POSTGRES, ProbeKind.REDIS):
            if not self.host:
                missing.append("host")
        if self.kind == ProbeKind.TCP and self.port is None:
            missing.append("port")
        if self.kind == ProbeKind.POSTGRES:
            if not self.user:
                missing.append("user")
            if self.password is None or not self.password.get_secret_value():
                missing.append("password")
            if not self.database:
                missing.append("database")
        if self.kind == ProbeKind.HTTP and not (self.url or self.host):
            missing.append("url or host")
        if self.kind == ProbeKind.COMMAND and not self.command:
            missing.append("command")

        if missing:
            raise ValueError(
                f"{self.kind.value} probe requires: {', '.join(missing)}"
            )
        return self

    @property
    def effective_port(self) -> Optional[int]:
        """Configured port, or the protocol default."""
        if self.port is not None:
            return self.port
        if self.kind == ProbeKind.HTTP:
            return 443 if self.scheme == "https" else 80
        return DEFAULT_PORTS.get(self.kind)

    @property
    def target_url(self) -> str:
        """Full URL for http probes."""
        if self.url:
            return self.url
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{self.scheme}://{self.host}:{self.effective_port}{path}"

    def describe(self) -> str:
        """Human-readable target, never including credentials."""
        if self.kind == ProbeKind.HTTP:
            return f"GET {self.target_url}"
        if self.kind == ProbeKind.COMMAND:
            return shlex.join(self.command)
        if self.kind == ProbeKind.POSTGRES:
            return f"postgres://{self.user}@{self.host}:{self.effective_port}/{self.database}"
        if self.kind == ProbeKind.REDIS:
            return f"redis://{self.host}:{self.effective_port}/{self.db}"
        return f"tcp://{self.host}:{self.effective_port}"


# ============================================================================
# ONE-SHOT ACTION
# ============================================================================

class ActionSpec(BaseModel):
    """
    External command run exactly once per orchestration run.

    Success is a zero exit status.
    """
    command: Tuple[str, ...] = Field(..., min_length=1)
    timeout_seconds: float = Field(default=600.0, gt=0)
    env: Dict[str, str] = Field(default_factory=dict)
    cwd: Optional[str] = None
    description: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("command", mode="before")
    @classmethod
    def handle_command_string(cls, v):
        return _split_command(v)

    def describe(self) -> str:
        return self.description or shlex.join(self.command)


# ============================================================================
# NODES & GRAPH
# ============================================================================

class NodeDefinition(BaseModel):
    """
    Definition of a single service in the graph.

    Immutable once loaded. The runtime outcome lives in NodeOutcome
    (core.models.report).
    """
    node_id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_.\-]+$")
    probe: ProbeSpec
    action: Optional[ActionSpec] = None
    depends_on: Tuple[str, ...] = ()
    retry: Optional[RetryPolicy] = None
    description: Optional[str] = None
    links: Dict[str, str] = Field(
        default_factory=dict,
        description="Operator-facing URLs printed once the stack is up",
    )

    model_config = {"frozen": True}

    @field_validator("depends_on", mode="before")
    @classmethod
    def handle_string_input(cls, v):
        return _as_tuple(v)


class HostCheck(BaseModel):
    """
    Command that must exit 0 before anything starts (e.g. `docker info`).

    A plain string or argv list is shorthand for {command: ...}.
    """
    command: Tuple[str, ...] = Field(..., min_length=1)
    message: Optional[str] = None
    timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def handle_shorthand(cls, data):
        if isinstance(data, (str, list, tuple)):
            return {"command": data}
        return data

    @field_validator("command", mode="before")
    @classmethod
    def handle_command_string(cls, v):
        return _split_command(v)

    def describe(self) -> str:
        return shlex.join(self.command)


class PreflightSpec(BaseModel):
    """Host requirements checked before anything starts."""
    required_commands: Tuple[str, ...] = ()
    required_env: Tuple[str, ...] = ()
    required_checks: Tuple[HostCheck, ...] = ()

    model_config = {"frozen": True}

    @field_validator("required_commands", "required_env", mode="before")
    @classmethod
    def handle_string_input(cls, v):
        return _as_tuple(v)


class ServiceGraph(BaseModel):
    """
    Complete stack declaration.

    Nodes keep their declaration order, which is also the tie-breaker
    for the topological processing order.
    """
    name: str = Field(..., max_length=128)
    description: Optional[str] = None
    retry: Optional[RetryPolicy] = None
    preflight: PreflightSpec = Field(default_factory=PreflightSpec)
    bring_up: Optional[ActionSpec] = None
    nodes: Tuple[NodeDefinition, ...] = ()

    model_config = {"frozen": True}

    def node_ids(self) -> List[str]:
        return [node.node_id for node in self.nodes]

    def get_node(self, node_id: str) -> NodeDefinition:
        """Get a node definition by ID."""
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        raise KeyError(f"Node '{node_id}' not found in graph '{self.name}'")

    def policy_for(self, node: NodeDefinition, fallback: RetryPolicy) -> RetryPolicy:
        """Node override, then graph default, then the process-wide fallback."""
        return node.retry or self.retry or fallback

    def validate_structure(self) -> List[str]:
        """
        Validate graph structure.

        Cycles are detected separately by the topological sort.

        Returns list of validation errors (empty if valid).
        """
        errors = []
        seen = set()
        for node in self.nodes:
            if node.node_id in seen:
                errors.append(f"Duplicate node id '{node.node_id}'")
            seen.add(node.node_id)

        for node in self.nodes:
            for dep in node.depends_on:
                if dep == node.node_id:
                    errors.append(f"Node '{node.node_id}' depends on itself")
                elif dep not in seen:
                    errors.append(
                        f"Node '{node.node_id}' depends on unknown node '{dep}'"
                    )

        return errors


__all__ = [
    "ConfigurationError",
    "GraphConfigurationError",
    "RetryPolicy",
    "ProbeSpec",
    "ActionSpec",
    "NodeDefinition",
    "HostCheck",
    "PreflightSpec",
    "ServiceGraph",
]
