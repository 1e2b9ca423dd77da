"""
HTTP session shared by all components talking to the cluster.
"""

import time
from typing import Any

import httpx

from raft_resilience.cluster.addresses import Endpoint

DEFAULT_REQUEST_TIMEOUT_S = 8.0


class ClusterSession:
    """
    Explicit network context of one resilience client.

    Owns the HTTP connection pool. Construct once per client and pass it to
    every component sending requests; close it when the run ends.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize session.

        Args:
            timeout: Ceiling per request in seconds
            transport: Custom transport (e.g. for tests)
        """
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self._last_latency_ms: int = 0
        self._latency_history: list[int] = []
        self._max_history = 100
        self._requests_sent = 0

    @property
    def metrics(self) -> dict[str, Any]:
        """Get request metrics."""
        avg_latency = (
            sum(self._latency_history) / len(self._latency_history)
            if self._latency_history
            else 0
        )
        return {
            "requests_sent": self._requests_sent,
            "last_request_latency_ms": self._last_latency_ms,
            "average_latency_ms": round(avg_latency, 1),
        }

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        method: str,
        endpoint: Endpoint,
        path: str,
        content: str | None = None,
    ) -> httpx.Response:
        """
        Send one request to an endpoint; no retries.

        Raises:
            httpx.RequestError: If the request didn't complete
        """
        client = self._get_client()
        url = f"{endpoint.base_url}{path}"

        self._requests_sent += 1
        start_time = time.perf_counter()
        try:
            return await client.request(method, url, content=content)
        finally:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            self._last_latency_ms = latency_ms
            self._latency_history.append(latency_ms)
            if len(self._latency_history) > self._max_history:
                self._latency_history.pop(0)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ClusterSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
