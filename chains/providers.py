"""
chains/providers.py - JSON-RPC provider with failover.

Provides reliable RPC access with:
- Multiple endpoint failover
- Request timeout handling
- Connection pooling
- Latency tracking
"""

import time
from dataclasses import dataclass
from typing import Any

import httpx

from core.constants import ErrorCode
from core.exceptions import InfraError
from core.logging import get_logger

logger = get_logger(__name__)

BASE_CHAIN_ID = 8453


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str


def _redact(url: str) -> str:
    """Scheme and host only; provider URLs often embed API keys."""
    parsed = httpx.URL(url)
    return f"{parsed.scheme}://{parsed.host}"


class RPCProvider:
    """
    RPC provider with failover support.

    Tries endpoints in order until one succeeds.
    Tracks statistics per endpoint for the shutdown summary.
    """

    def __init__(
        self,
        rpc_urls: list[str],
        chain_id: int = BASE_CHAIN_ID,
        timeout_seconds: int = 10,
        client: httpx.AsyncClient | None = None,
    ):
        self.chain_id = chain_id
        self.rpc_urls = list(rpc_urls)
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0

        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.rpc_urls
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def call(
        self,
        method: str,
        params: list | None = None,
    ) -> RPCResponse:
        """
        Make an RPC call with failover.

        Raises:
            InfraError: If all endpoints fail
        """
        if not self.rpc_urls:
            raise InfraError(
                "No RPC endpoints configured",
                code=ErrorCode.INFRA_RPC_ERROR,
                details={"chain_id": self.chain_id},
            )

        client = await self._get_client()
        last_error: str | None = None

        for url in self.rpc_urls:
            stats = self.stats[url]
            stats.total_requests += 1

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params or [],
                "id": self._next_request_id(),
            }

            start_ms = int(time.time() * 1000)

            try:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
                latency_ms = int(time.time() * 1000) - start_ms
                result = resp.json()
            except httpx.TimeoutException:
                latency_ms = int(time.time() * 1000) - start_ms
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = stats.last_error
                logger.debug(f"RPC timeout for {_redact(url)}: {latency_ms}ms")
                continue
            except (httpx.HTTPError, ValueError) as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = stats.last_error
                logger.debug(f"RPC failed for {_redact(url)}: {e}")
                continue

            if "error" in result:
                error = result["error"]
                error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                stats.failed_requests += 1
                stats.last_error = error_msg
                last_error = error_msg
                logger.debug(f"RPC error from {_redact(url)}: {error_msg}")
                continue

            stats.successful_requests += 1
            stats.total_latency_ms += latency_ms
            stats.last_success_ts = int(time.time() * 1000)

            return RPCResponse(
                result=result.get("result"),
                latency_ms=latency_ms,
                endpoint_used=url,
            )

        raise InfraError(
            f"All RPC endpoints failed for {method}",
            code=ErrorCode.INFRA_RPC_ERROR,
            details={
                "chain_id": self.chain_id,
                "method": method,
                "endpoints_tried": len(self.rpc_urls),
                "last_error": last_error,
            },
        )

    async def get_block_number(self) -> tuple[int, int]:
        """
        Get latest block number.

        Returns:
            (block_number, latency_ms)
        """
        response = await self.call("eth_blockNumber")
        return int(response.result, 16), response.latency_ms

    async def eth_call(
        self,
        to: str,
        data: str,
        block: str = "latest",
    ) -> RPCResponse:
        """eth_call against a contract."""
        return await self.call(
            "eth_call",
            [{"to": to, "data": data}, block],
        )

    async def get_logs(
        self,
        addresses: list[str],
        topics: list[str],
        from_block: int,
        to_block: int,
    ) -> list[dict]:
        """
        eth_getLogs for any of the addresses, matching any of topics as topic0.
        """
        response = await self.call(
            "eth_getLogs",
            [{
                "address": addresses,
                "topics": [topics],
                "fromBlock": hex(from_block),
                "toBlock": hex(to_block),
            }],
        )
        return response.result or []

    def get_stats_summary(self) -> dict:
        """Statistics for all endpoints, keyed by redacted URL."""
        return {
            _redact(url): {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
