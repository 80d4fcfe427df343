# ============================================================================
# GRAPH SERVICE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Service graph loading
# PURPOSE: Load, resolve and validate service graph files
# CREATED: 19 OCT 2026
# ============================================================================
"""
Graph Service

Loads a ServiceGraph from a YAML file:

    name: rails-stack
    retry: {max_attempts: 30, delay_seconds: 2}
    nodes:
      store:
        probe: {kind: postgres, host: "{{ env.POSTGRES_HOST }}", ...}
      app:
        depends_on: [store]
        probe: {kind: http, url: "{{ env.APP_HEALTH_URL }}"}

`{{ env.* }}` templates are resolved before validation. Every failure
(missing file, bad YAML, unresolved template, invalid field, dangling
dependency) surfaces as GraphConfigurationError so the caller can exit
before any probing.

Without an explicit path the bundled stacks/default.yaml is used.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from core.models.graph import GraphConfigurationError, ServiceGraph
from orchestrator.engine.templates import TemplateResolutionError, resolve_document

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_FILE = Path(__file__).parent.parent / "stacks" / "default.yaml"


def _format_validation_error(error: ValidationError) -> str:
    """Field locations and messages only; input values may hold credentials."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {item.get('msg')}" if loc else str(item.get("msg")))
    return "; ".join(parts)


class GraphService:
    """Service for loading service graph definitions."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize graph service.

        Args:
            environ: Mapping for {{ env.* }} resolution (default: os.environ)
        """
        self.environ = environ

    def load(self, path: Optional[Union[str, Path]] = None) -> ServiceGraph:
        """
        Load a graph from a YAML file.

        Args:
            path: Graph file; defaults to the bundled stack

        Raises:
            GraphConfigurationError: on any load or validation failure
        """
        path = Path(path) if path else DEFAULT_GRAPH_FILE
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise GraphConfigurationError(f"Graph file not found: {path}") from e
        except yaml.YAMLError as e:
            raise GraphConfigurationError(f"Invalid YAML in {path}: {e}") from e

        graph = self.parse(data, source=str(path))
        logger.info(f"Loaded graph '{graph.name}' ({len(graph.nodes)} nodes) from {path}")
        return graph

    def parse(self, data: Any, source: str = "<graph>") -> ServiceGraph:
        """
        Build a ServiceGraph from a parsed document.

        Raises:
            GraphConfigurationError: on any resolution or validation failure
        """
        if not isinstance(data, dict):
            raise GraphConfigurationError(f"{source}: top level must be a mapping")

        try:
            data = resolve_document(data, environ=self.environ)
        except TemplateResolutionError as e:
            raise GraphConfigurationError(f"{source}: {e}") from e

        data = dict(data)
        data["nodes"] = self._normalize_nodes(data.get("nodes"), source)

        try:
            graph = ServiceGraph(**data)
        except ValidationError as e:
            raise GraphConfigurationError(
                f"Invalid graph in {source}: {_format_validation_error(e)}"
            ) from e

        errors = graph.validate_structure()
        if errors:
            raise GraphConfigurationError(f"Invalid graph in {source}: {'; '.join(errors)}")

        return graph

    @staticmethod
    def _normalize_nodes(nodes: Any, source: str) -> list:
        """Accept a mapping of node id -> body or a list of bodies with node_id."""
        if nodes is None:
            raise GraphConfigurationError(f"{source}: graph has no nodes")

        if isinstance(nodes, list):
            return nodes

        if not isinstance(nodes, dict):
            raise GraphConfigurationError(f"{source}: 'nodes' must be a mapping or a list")

        normalized = []
        for node_id, body in nodes.items():
            if not isinstance(body, dict):
                raise GraphConfigurationError(f"{source}: node '{node_id}' must be a mapping")
            entry: Dict[str, Any] = dict(body)
            entry["node_id"] = str(node_id)
            normalized.append(entry)
        return normalized


__all__ = [
    "DEFAULT_GRAPH_FILE",
    "GraphService",
]
