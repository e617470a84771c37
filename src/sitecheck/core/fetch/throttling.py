"""
Concurrency limiting and request pacing.

Provides a FIFO concurrency pool for check units and the randomized
delay / User-Agent selection applied before each site request.
"""

from __future__ import annotations

import asyncio
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyPool:
    """Bounded pool that admits queued work in strict FIFO order.

    Features:
    - At most ``capacity`` tasks run at once
    - Excess submitters wait in a FIFO queue
    - A freed slot is handed straight to the oldest waiter, so a new
      submitter can never overtake the queue
    - Results and exceptions pass through unchanged

    All bookkeeping happens on the event loop thread; admission and
    release never interleave.
    """

    def __init__(self, capacity: int):
        """Initialize the pool.

        Args:
            capacity: Maximum number of concurrently running tasks
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._active

    @property
    def waiting(self) -> int:
        """Number of submitters queued for a slot."""
        return sum(1 for fut in self._waiters if not fut.done())

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once a slot is free and return its result.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Whatever the task returns

        Raises:
            Exception: Whatever the task raises
            asyncio.CancelledError: If the pool was closed while waiting
        """
        await self._acquire()
        try:
            return await task()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._closed:
            raise RuntimeError("ConcurrencyPool is closed")

        if self._active < self._capacity and not self._waiters:
            self._active += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Admitted, then cancelled before resuming: pass the slot on
                self._release()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            raise
        # The releaser transferred its slot; active count already includes us

    def _release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._active -= 1

    def close(self) -> None:
        """Cancel every queued waiter. Running tasks are left alone."""
        self._closed = True
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.cancel()

    def stats(self) -> dict[str, Any]:
        """Get pool statistics."""
        return {
            "capacity": self._capacity,
            "active": self._active,
            "waiting": self.waiting,
            "closed": self._closed,
        }


@dataclass
class RequestJitter:
    """Randomized pre-request delay and User-Agent rotation.

    Best-effort anti-blocking only; not a rate-limit guarantee.
    Pass a seeded ``random.Random`` for deterministic behaviour.
    """

    min_delay_ms: int = 1000
    max_delay_ms: int = 3000
    user_agents: list[str] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        if self.min_delay_ms < 0 or self.max_delay_ms < self.min_delay_ms:
            raise ValueError(
                f"invalid delay window [{self.min_delay_ms}, {self.max_delay_ms})"
            )

    def delay_seconds(self) -> float:
        """Pick a delay in [min, max) milliseconds, returned in seconds."""
        if self.max_delay_ms == self.min_delay_ms:
            return self.min_delay_ms / 1000.0
        return self.rng.randrange(self.min_delay_ms, self.max_delay_ms) / 1000.0

    def user_agent(self) -> str | None:
        if not self.user_agents:
            return None
        return self.rng.choice(self.user_agents)

    async def pause(self) -> float:
        """Sleep for a random delay and return how long it was."""
        delay = self.delay_seconds()
        if delay > 0:
            await asyncio.sleep(delay)
        return delay

    def headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        """Request headers with a freshly picked User-Agent."""
        headers: dict[str, str] = {}
        agent = self.user_agent()
        if agent:
            headers["User-Agent"] = agent
        headers.update(extra or {})
        return headers
