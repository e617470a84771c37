"""Fetch utilities - concurrency, pacing, retries."""

from .throttling import ConcurrencyPool, RequestJitter
from .retries import RetryConfig, retry_async

__all__ = [
    "ConcurrencyPool",
    "RequestJitter",
    "RetryConfig",
    "retry_async",
]
