# ============================================================================
# HTTP READINESS PROBE
# ============================================================================
# EPOCH: 1 - STARTUP ORCHESTRATION
# STATUS: Infrastructure - http-get
# PURPOSE: Health endpoint returns 2xx and, if JSON, a healthy status
# CREATED: 19 OCT 2026
# ============================================================================
"""
HTTP Readiness Probe

GETs a health endpoint (application /health, collector /-/ready, exporter
/metrics, ...).

Ready when:
- status code is inside expected_status (default 200-299), and
- a JSON body, if any, with a "status" field reports an accepted value
  (healthy / ok / up / pass by default)

A 401 or 403 is unrecoverable: waiting will not fix credentials.
"""

import logging
from typing import Optional

import httpx

from core.contracts import ProbeKind
from core.models.graph import ProbeSpec
from probes.core import (
    ReadinessProbe,
    ProbeNotReady,
    ProbeConfigurationError,
    resolve_target,
)
from probes.registry import register_probe

logger = logging.getLogger(__name__)

UNRECOVERABLE_STATUS_CODES = {401, 403}


def body_status(response: httpx.Response) -> Optional[str]:
    """The "status" field of a JSON body, or None."""
    if "json" not in response.headers.get("content-type", ""):
        return None
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("status"), str):
        return data["status"]
    return None


@register_probe(ProbeKind.HTTP)
class HttpProbe(ReadinessProbe):
    """
    HTTP health endpoint probe.

    Args:
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        spec: ProbeSpec,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(spec, timeout_seconds)
        self._transport = transport

    async def check(self) -> bool:
        url = httpx.URL(self.spec.target_url)
        port = url.port or (443 if url.scheme == "https" else 80)
        await resolve_target(url.host, port)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise ProbeNotReady(f"Timed out waiting for {url}") from e
        except httpx.TransportError as e:
            raise ProbeNotReady(f"{url} unreachable: {e}") from e

        status_code = response.status_code
        if status_code in UNRECOVERABLE_STATUS_CODES:
            raise ProbeConfigurationError(
                f"{url} rejected the request (HTTP {status_code})"
            )

        low, high = self.spec.expected_status
        if not low <= status_code <= high:
            raise ProbeNotReady(f"{url} returned HTTP {status_code}")

        reported = body_status(response)
        accepted = {s.lower() for s in self.spec.accepted_body_statuses}
        if reported is not None and reported.lower() not in accepted:
            raise ProbeNotReady(f"{url} reports status '{reported}'")

        return True


__all__ = ["HttpProbe", "body_status"]
