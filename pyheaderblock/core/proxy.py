"""
PyHeaderBlock Upstream Forwarder

Forwards requests that passed the filter to a single upstream service.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from fastapi import Request, Response

from .config import UpstreamConfig
from .exceptions import UpstreamError, UpstreamTimeoutError


logger = structlog.get_logger(__name__)


HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
})


class UpstreamForwarder:
    """Reverse proxy to one upstream"""

    def __init__(self, config: UpstreamConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.url:
            raise UpstreamError("No upstream URL configured")

        self.config = config
        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout, connect=5.0),
            limits=httpx.Limits(
                max_keepalive_connections=100,
                max_connections=200
            ),
            transport=transport,
        )

        self.stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "average_response_time": 0.0,
        }

    async def stop(self):
        """Close upstream connections"""
        await self.http_client.aclose()

    def build_upstream_url(self, path: str, query: str = "") -> str:
        url = f"{self.config.url}{path}"
        if query:
            url += f"?{query}"
        return url

    def prepare_upstream_headers(
        self,
        raw_headers: List[Tuple[str, str]],
        client_ip: Optional[str]
    ) -> List[Tuple[str, str]]:
        """Copy request headers, minus hop-by-hop ones, plus forwarding headers"""
        headers = []
        original_host = ""
        forwarded_for = []

        for name, value in raw_headers:
            lower = name.lower()
            if lower in HOP_BY_HOP_HEADERS or lower == "content-length":
                continue
            if lower == "host":
                original_host = value
                if not self.config.preserve_host:
                    continue
            if lower == "x-forwarded-for":
                forwarded_for.append(value)
                continue
            headers.append((name, value))

        if client_ip:
            forwarded_for.append(client_ip)
        if forwarded_for:
            headers.append(("x-forwarded-for", ", ".join(forwarded_for)))
        if original_host:
            headers.append(("x-forwarded-host", original_host))

        return headers

    async def forward(self, request: Request) -> Response:
        """Send the request upstream and relay the response"""
        self.stats["total_requests"] += 1
        start_time = time.time()

        client_ip = request.client.host if request.client else None
        upstream_url = self.build_upstream_url(
            request.url.path,
            request.url.query
        )
        raw_headers = [
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in request.headers.raw
        ]

        try:
            upstream_response = await self.http_client.request(
                method=request.method,
                url=upstream_url,
                headers=self.prepare_upstream_headers(raw_headers, client_ip),
                content=await request.body(),
            )
        except httpx.TimeoutException as e:
            self.stats["failed_requests"] += 1
            logger.error("Upstream timeout", upstream_url=upstream_url)
            raise UpstreamTimeoutError(
                f"Upstream server timeout: {self.config.url}",
                upstream_url=self.config.url,
                timeout_duration=self.config.timeout,
                cause=e
            )
        except httpx.RequestError as e:
            self.stats["failed_requests"] += 1
            logger.error("Upstream request failed", upstream_url=upstream_url, error=str(e))
            raise UpstreamError(
                f"Upstream request failed: {e}",
                upstream_url=self.config.url,
                cause=e
            )

        self.stats["successful_requests"] += 1
        total_time = time.time() - start_time
        self.stats["average_response_time"] = (
            (self.stats["average_response_time"] * (self.stats["successful_requests"] - 1) + total_time)
            / self.stats["successful_requests"]
        )

        response = Response(
            content=upstream_response.content,
            status_code=upstream_response.status_code
        )
        for name, value in upstream_response.headers.multi_items():
            lower = name.lower()
            # body is already decoded and re-measured
            if lower in HOP_BY_HOP_HEADERS or lower in ("content-length", "content-encoding"):
                continue
            response.headers.append(name, value)
        return response

    def get_statistics(self) -> Dict[str, Any]:
        """Get forwarding statistics"""
        return self.stats.copy()
