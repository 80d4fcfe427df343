# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Core - Structured logging with context
# PURPOSE: Progress lines and queryable logs for orchestration runs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Provides human-readable (default) or JSON-formatted logging to stdout.
Progress lines printed while polling go through this module.

Features:
- Contextual fields (run_id, node_id, attempt)
- Context carried in contextvars, so concurrent node tasks keep their own
- JSON output for log aggregation (LOG_FORMAT=json)
- Named checkpoints marking run milestones

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("orchestrator.runner")

    with log_context(run_id="a1b2c3", node_id="store"):
        logger.info("Waiting for store")
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union


@dataclass(frozen=True)
class LogContext:
    """Contextual fields attached to every record logged inside log_context()."""
    run_id: Optional[str] = None
    node_id: Optional[str] = None
    attempt: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Fields that are set, with extra merged in."""
        fields = {k: v for k, v in asdict(self).items() if k != "extra" and v is not None}
        return {**fields, **self.extra}


_current_context: contextvars.ContextVar = contextvars.ContextVar(
    "stackboot_log_context", default=LogContext()
)


def get_current_context() -> LogContext:
    """Get current logging context."""
    return _current_context.get()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Fields not given are inherited from the enclosing context.

    Example:
        with log_context(node_id="store", attempt=3):
            logger.info("Probe failed")
    """
    parent = get_current_context()
    extra = {**parent.extra, **kwargs.pop("extra", {})}
    new_context = replace(parent, extra=extra, **kwargs)

    token = _current_context.set(new_context)
    try:
        yield new_context
    finally:
        _current_context.reset(token)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record, for log shipping.

    Context fields go under "context", a record's `data` extra under "data".
    """

    def __init__(self, include_context: bool = True, include_source: bool = True):
        super().__init__()
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": _utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        if getattr(record, "data", None):
            log_data["data"] = record.data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """
    Terminal formatter: "12:00:01 INFO    [store #3] message".

    The bracket shows the node and attempt when a record is logged inside
    a node's log_context.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        tags = [context.node_id] if context.node_id else []
        if context.attempt:
            tags.append(f"#{context.attempt}")
        prefix = f" [{' '.join(tags)}]" if tags else ""

        line = f"{_utcnow():%H:%M:%S} {record.levelname:<7}{prefix} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger.

    Context is read by the formatters at emit time, so a plain
    logging.Logger is enough.
    """
    return logging.getLogger(name)


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    include_source: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON format (for log shipping)
        include_source: Include source file/line info in JSON records
        stream: Destination (default stdout)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter = StructuredFormatter(include_source=include_source)
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # Client libraries are chatty at INFO while a dependency is still booting
    for noisy in ("httpx", "httpcore", "psycopg", "redis"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named checkpoint.

    Checkpoints are DEBUG-level markers (run_started, node_ready,
    action_completed, run_completed) that can be queried in JSON logs.
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    checkpoint_data = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        checkpoint_data["data"] = data

    logger.debug(f"CHECKPOINT: {name}", extra={"data": checkpoint_data})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
