"""Backend implementations for fetching sites."""

from .base import (
    Backend,
    BackendError,
    FetchError,
    FetchResult,
    RequestSpec,
)
from .http_backend import HttpBackend

__all__ = [
    # Base classes
    "Backend",
    "RequestSpec",
    "FetchResult",
    # Base errors
    "BackendError",
    "FetchError",
    # HTTP backend
    "HttpBackend",
]
