# ============================================================================
# READINESS PROBE IMPLEMENTATIONS
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Probe implementations
# PURPOSE: Concrete probes for each dependency kind
# CREATED: 19 OCT 2026
# ============================================================================
"""
Readiness Probe Implementations

tcp-ping:
- tcp: TcpProbe

protocol-ping:
- postgres: PostgresProbe (psycopg)
- redis: RedisProbe (redis-py asyncio)

http-get:
- http: HttpProbe (httpx)

command:
- command: CommandProbe (e.g. docker compose exec pg_isready)

Import this module to register all probes:
    import probes.checks
"""

# Import all probe modules to trigger registration
from probes.checks.network import TcpProbe
from probes.checks.datastore import PostgresProbe
from probes.checks.cache import RedisProbe
from probes.checks.http import HttpProbe
from probes.checks.command import CommandProbe

__all__ = [
    "TcpProbe",
    "PostgresProbe",
    "RedisProbe",
    "HttpProbe",
    "CommandProbe",
]
