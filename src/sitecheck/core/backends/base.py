"""
Fetching contract shared by site backends.

A backend performs exactly one request per ``fetch`` call. Whether a
response is usable is decided here, not by the caller: anything below
500 comes back as a ``FetchResult`` (4xx bodies included), everything
else raises ``FetchError`` so retry policies can key on the type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestSpec:
    """One GET against a site."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 10.0
    follow_redirects: bool = True

    # Issue number, for log context only
    target_id: str | int | None = None


@dataclass
class FetchResult:
    """A response that was received (status below 500)."""

    url: str
    final_url: str
    status_code: int
    html: str
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def redirected(self) -> bool:
        return self.final_url.rstrip("/") != self.url.rstrip("/")

    def describe(self) -> str:
        """Short human summary for debug logs."""
        where = f" via {self.final_url}" if self.redirected else ""
        return f"HTTP {self.status_code}{where} in {self.elapsed_ms:.0f}ms, {len(self.html)} chars"


class Backend(ABC):
    """Fetches sites; owns the connection pool."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Issue the request once.

        Raises:
            FetchError: On timeout, transport failure or a 5xx status
        """

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class FetchError(BackendError):
    """A single attempt produced no usable response.

    ``status_code`` is set for 5xx responses and None for timeouts and
    transport failures.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
        timed_out: bool = False,
    ):
        super().__init__(message, url=url, status_code=status_code, cause=cause)
        self.timed_out = timed_out
