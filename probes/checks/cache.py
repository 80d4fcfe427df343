# ============================================================================
# CACHE READINESS PROBE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - Redis protocol-ping
# PURPOSE: Cache answers PING
# CREATED: 19 OCT 2026
# ============================================================================
"""
Cache Readiness Probe

Sends PING with redis-py's asyncio client (equivalent of `redis-cli ping`).

Error classification:
- Connection refused, timeouts, LOADING (dataset still loading): transient
- Authentication rejected / required: unrecoverable
"""

import logging

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import (
    AuthenticationError,
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from core.contracts import ProbeKind
from probes.core import (
    ReadinessProbe,
    ProbeNotReady,
    ProbeConfigurationError,
    resolve_target,
)
from probes.registry import register_probe

logger = logging.getLogger(__name__)


@register_probe(ProbeKind.REDIS)
class RedisProbe(ReadinessProbe):
    """Redis connectivity: PING must return PONG."""

    def _client(self) -> aioredis.Redis:
        spec = self.spec
        return aioredis.Redis(
            host=spec.host,
            port=spec.effective_port,
            db=spec.db,
            password=spec.password.get_secret_value() if spec.password else None,
            socket_connect_timeout=self.timeout_seconds,
            socket_timeout=self.timeout_seconds,
            # The waiter owns retries
            retry=Retry(NoBackoff(), 0),
        )

    async def check(self) -> bool:
        await resolve_target(self.spec.host, self.spec.effective_port)

        client = self._client()
        try:
            pong = await client.ping()
        # AuthenticationError subclasses ConnectionError; order matters
        except AuthenticationError as e:
            raise ProbeConfigurationError(f"Redis rejected credentials: {e}") from e
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise ProbeNotReady(f"Redis not accepting connections: {e}") from e
        except RedisError as e:
            raise ProbeNotReady(f"Redis PING failed: {e}") from e
        finally:
            await client.aclose()

        if not pong:
            raise ProbeNotReady("Redis PING returned no PONG")
        return True


__all__ = ["RedisProbe"]
