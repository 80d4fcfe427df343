# ============================================================================
# TEMPLATE RESOLUTION ENGINE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Template resolution with Jinja2
# PURPOSE: Resolve {{ env.* }} expressions in service graph files
# CREATED: 19 OCT 2026
# ============================================================================
"""
Template Resolution Engine

Resolves template expressions in graph files so connection targets and
credentials come from named configuration values.

Supported patterns:
- {{ env.VAR_NAME }} - Environment variable (error if unset)
- {{ env.VAR_NAME | default('5432') }} - With a non-secret default
- {{ graph.name }} - Graph-level values

Examples:
    probe:
      kind: postgres
      host: "{{ env.POSTGRES_HOST | default('localhost') }}"
      password: "{{ env.POSTGRES_PASSWORD }}"

Credentials must never carry a default.
"""

import os
import logging
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, BaseLoader, TemplateSyntaxError, UndefinedError, StrictUndefined

logger = logging.getLogger(__name__)


class TemplateResolutionError(Exception):
    """Raised when template resolution fails."""
    pass


class TemplateResolver:
    """
    Jinja2-based template resolver for graph files.

    Values are always rendered to strings; pydantic coerces ports and
    counts when the graph model is built.
    """

    def __init__(self):
        """Initialize the template resolver with Jinja2 environment."""
        self._env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            # Keep undefined as undefined for error detection
            undefined=StrictUndefined,
        )

    def resolve(self, data: Any, context: "TemplateContext") -> Any:
        """
        Resolve all template expressions in a parsed YAML document.

        Args:
            data: Dicts, lists and scalars from yaml.safe_load
            context: Template context

        Returns:
            New structure with all templates resolved

        Raises:
            TemplateResolutionError: If a template cannot be resolved
        """
        return self._resolve_value(data, context.to_dict(), path="")

    def _resolve_value(self, value: Any, context: Dict[str, Any], path: str) -> Any:
        """Recursively resolve template expressions in a value."""
        if isinstance(value, str):
            return self._resolve_string(value, context, path)
        elif isinstance(value, dict):
            return {
                k: self._resolve_value(v, context, f"{path}.{k}" if path else str(k))
                for k, v in value.items()
            }
        elif isinstance(value, list):
            return [
                self._resolve_value(item, context, f"{path}[{i}]")
                for i, item in enumerate(value)
            ]
        else:
            return value

    def _resolve_string(self, value: str, context: Dict[str, Any], path: str) -> str:
        """Resolve template expressions in a string value."""
        # Quick check: if no template markers, return as-is
        if '{{' not in value:
            return value

        try:
            template = self._env.from_string(value)
            return template.render(context)
        except (TemplateSyntaxError, UndefinedError) as e:
            raise TemplateResolutionError(f"Failed to resolve {path or value!r}: {e}")


class TemplateContext:
    """
    Context for template resolution.

    Provides access to:
    - env: Environment variables (or an explicit mapping, for tests)
    - graph: Top-level graph fields (name, description)
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        graph: Optional[Dict[str, Any]] = None,
    ):
        self.environ = environ
        self.graph = graph or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for Jinja2 rendering."""
        return {
            "env": _EnvAccessor(self.environ),
            "graph": self.graph,
        }


class _EnvAccessor:
    """Attribute access to environment variables; missing names are undefined."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    def _lookup(self, name: str) -> str:
        environ = os.environ if self._environ is None else self._environ
        value = environ.get(name)
        if value is None:
            raise AttributeError(f"Environment variable not set: {name}")
        return value

    def __getattr__(self, name: str) -> str:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._lookup(name)

    def __getitem__(self, name: str) -> str:
        try:
            return self._lookup(name)
        except AttributeError as e:
            raise KeyError(name) from e


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_resolver: Optional[TemplateResolver] = None


def get_resolver() -> TemplateResolver:
    """Get shared template resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = TemplateResolver()
    return _resolver


def resolve_document(
    data: Any,
    environ: Optional[Mapping[str, str]] = None,
) -> Any:
    """
    Resolve a parsed graph document against the environment.

    Args:
        data: Parsed YAML
        environ: Mapping to use instead of os.environ

    Returns:
        Resolved document
    """
    graph_fields = {}
    if isinstance(data, dict):
        graph_fields = {
            k: v for k, v in data.items()
            if k in ("name", "description") and isinstance(v, str) and "{{" not in v
        }
    context = TemplateContext(environ=environ, graph=graph_fields)
    return get_resolver().resolve(data, context)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TemplateResolver",
    "TemplateContext",
    "TemplateResolutionError",
    "get_resolver",
    "resolve_document",
]
