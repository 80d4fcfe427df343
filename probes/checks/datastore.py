# ============================================================================
# DATA STORE READINESS PROBE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - PostgreSQL protocol-ping
# PURPOSE: Data store accepts authenticated connections and answers queries
# CREATED: 19 OCT 2026
# ============================================================================
"""
Data Store Readiness Probe

Connects with the application's credentials and runs SELECT 1.

Error classification:
- Connection refused, "the database system is starting up", timeouts:
  transient (ProbeNotReady)
- Authentication rejected, unknown role or database:
  unrecoverable (ProbeConfigurationError)
"""

import logging
import math

import psycopg

from core.contracts import ProbeKind
from probes.core import (
    ReadinessProbe,
    ProbeNotReady,
    ProbeConfigurationError,
    resolve_target,
)
from probes.registry import register_probe

logger = logging.getLogger(__name__)

# invalid_authorization_specification, invalid_password, invalid_catalog_name
UNRECOVERABLE_SQLSTATES = {"28000", "28P01", "3D000"}

UNRECOVERABLE_MESSAGES = (
    "password authentication failed",
    "authentication failed",
    "no password supplied",
    "does not exist",
)


def is_unrecoverable(error: psycopg.Error) -> bool:
    """Check if a connection error needs operator action rather than time."""
    if getattr(error, "sqlstate", None) in UNRECOVERABLE_SQLSTATES:
        return True
    message = str(error).lower()
    return any(fragment in message for fragment in UNRECOVERABLE_MESSAGES)


@register_probe(ProbeKind.POSTGRES)
class PostgresProbe(ReadinessProbe):
    """PostgreSQL connectivity: connect, SELECT 1, close."""

    async def check(self) -> bool:
        spec = self.spec
        port = spec.effective_port
        await resolve_target(spec.host, port)

        try:
            conn = await psycopg.AsyncConnection.connect(
                host=spec.host,
                port=port,
                user=spec.user,
                password=spec.password.get_secret_value(),
                dbname=spec.database,
                sslmode=spec.sslmode,
                connect_timeout=max(1, math.ceil(self.timeout_seconds)),
                autocommit=True,
            )
        except psycopg.Error as e:
            if is_unrecoverable(e):
                raise ProbeConfigurationError(
                    f"PostgreSQL rejected {self.target}: {e}"
                ) from e
            raise ProbeNotReady(f"PostgreSQL not accepting connections: {e}") from e

        async with conn:
            try:
                cur = await conn.execute("SELECT 1 AS health_check")
                row = await cur.fetchone()
            except psycopg.Error as e:
                raise ProbeNotReady(f"PostgreSQL query failed: {e}") from e

        if not row or row[0] != 1:
            raise ProbeNotReady("PostgreSQL query returned unexpected result")
        return True


__all__ = ["PostgresProbe", "is_unrecoverable"]
