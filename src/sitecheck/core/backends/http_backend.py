"""
HTTP Backend implementation using httpx.

Provides async HTTP fetching with:
- One shared connection pool per run
- Responses below 500 returned as-is (4xx bodies included)
- Timeouts, transport failures and 5xx raised as FetchError
"""

from __future__ import annotations

import time

import httpx

from .base import Backend, FetchError, FetchResult, RequestSpec


# Server errors are failures; everything below is a usable response
FAILURE_STATUS_FLOOR = 500


class HttpBackend(Backend):
    """HTTP backend using httpx for async requests."""

    def __init__(
        self,
        timeout: float = 10.0,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_connections: int = 20,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Default request timeout in seconds
            default_headers: Headers sent with every request
            transport: Custom transport (tests use httpx.MockTransport)
            max_connections: Connection pool size
        """
        self.timeout = timeout
        self.default_headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "zh-CN,zh;q=0.9,en-US;q=0.8,en;q=0.7",
            **(default_headers or {}),
        }
        self._transport = transport
        self._max_connections = max_connections
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            kwargs: dict[str, object] = {
                "timeout": httpx.Timeout(self.timeout),
                "headers": self.default_headers,
                "limits": httpx.Limits(
                    max_connections=self._max_connections,
                    max_keepalive_connections=self._max_connections // 2,
                ),
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Issue a single GET.

        Args:
            request: Request specification

        Returns:
            FetchResult for any status below 500

        Raises:
            FetchError: On timeout, transport failure or a 5xx status
        """
        client = self._ensure_client()
        started = time.monotonic()

        try:
            response = await client.get(
                request.url,
                headers=request.headers,
                timeout=request.timeout,
                follow_redirects=request.follow_redirects,
            )
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Timed out after {request.timeout}s",
                url=request.url,
                cause=e,
                timed_out=True,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(
                f"Transport error: {e.__class__.__name__}: {e}",
                url=request.url,
                cause=e,
            ) from e

        elapsed_ms = (time.monotonic() - started) * 1000

        if response.status_code >= FAILURE_STATUS_FLOOR:
            raise FetchError(
                f"Server error {response.status_code} {response.reason_phrase}",
                url=request.url,
                status_code=response.status_code,
            )

        return FetchResult(
            url=request.url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=response.text,
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
