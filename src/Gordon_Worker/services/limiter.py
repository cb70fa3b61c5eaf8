"""Async concurrency limiter (admission gate) for per-tenant work.

Caps how many tenant tasks may call quota- or rate-limited external services
at the same time, regardless of tenant count. Capacity is fixed at
construction. Permits are always returned through the ``slot()`` context
manager, so a crash inside the guarded work cannot leak one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_MAX_CONCURRENT: int = 5


class ConcurrencyLimiter:
    """Counting admission gate built on ``asyncio.Semaphore``.

    Usage::

        limiter = ConcurrencyLimiter(max_concurrent=5)

        async with limiter.slot():
            await sync_tenant(tenant_id)

    ``acquire()``/``release()`` are exposed for callers that need them, but
    must be paired in ``try``/``finally``.
    """

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT, *, name: str = "default") -> None:
        if max_concurrent < 1:
            msg = f"max_concurrent must be >= 1, got {max_concurrent}"
            raise ValueError(msg)
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._capacity = max_concurrent
        self._name = name
        self._in_flight = 0
        self._peak_in_flight = 0

        logger.info("ConcurrencyLimiter '%s' initialized: max_concurrent=%d", name, max_concurrent)

    @property
    def capacity(self) -> int:
        """Maximum number of concurrently admitted tasks."""
        return self._capacity

    @property
    def in_flight(self) -> int:
        """Number of tasks currently past ``acquire()`` and before ``release()``."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest ``in_flight`` value observed since construction."""
        return self._peak_in_flight

    async def acquire(self) -> None:
        """Suspend until a slot is free.

        Cancellation while waiting propagates ``CancelledError`` without
        consuming a slot.
        """
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)

    def release(self) -> None:
        """Return a slot to the gate."""
        self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the ``async with`` block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
