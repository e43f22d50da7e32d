"""Two-level rate limiter for outbound fetches.

Every fetch passes two gates, in this order:

1. **Domain gate** — one per hostname, concurrency 1, with a minimum interval
   between task starts (``settings.per_domain_interval``).  The interval is
   measured from when the previous task really started, after it also got a
   global slot.  Created on first use and kept for the life of the process so
   pacing carries across calls.
2. **Global gate** — shared by all domains, bounded concurrency
   (``settings.max_concurrent``).

The domain slot is taken *before* competing for a global slot.  The other
order would let a backlog for one domain occupy every global slot while each
of those tasks waits on that domain's serialization, starving other domains.

Everything runs on a single event loop, so the gate registry needs no lock:
it is only ever touched from coroutines owned by :class:`FetchQueue`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, TypeVar

from webreader.config import settings
from webreader.errors import QueueClearedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


class _Gate:
    """Admission gate: at most *concurrency* tasks at once, starts spaced by *interval*."""

    def __init__(self, concurrency: int, interval: float = 0.0) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.concurrency = concurrency
        self.interval = max(interval, 0.0)
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._idle_waiters: list[asyncio.Future[None]] = []
        self._last_start: float | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def pending(self) -> int:
        """Tasks waiting for a slot."""
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def running(self) -> int:
        """Tasks holding a slot (including any still waiting out the interval)."""
        return self._running

    @property
    def is_idle(self) -> bool:
        return self._running == 0 and self.pending == 0

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    async def run(self, task: Task[T]) -> T:
        await self._acquire()
        try:
            await self._pace()
            return await task()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self.concurrency and not self._waiters:
            self._running += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.cancelled():
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            elif fut.exception() is None:
                # The slot was handed over just before we were cancelled.
                self._release()
            raise

    def mark_start(self) -> None:
        """Record that an admitted task has actually started running."""
        self._last_start = time.monotonic()

    async def _pace(self) -> None:
        # Spacing is measured from the last recorded start, which may be later
        # than admission when the task also waited on another gate.
        if not self.interval or self._last_start is None:
            return
        delay = self._last_start + self.interval - time.monotonic()
        if delay > 0:
            await asyncio.sleep(delay)

    def _release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Hand the slot straight to the next waiter; _running is unchanged.
                fut.set_result(None)
                return
        self._running -= 1
        if self._running == 0:
            self._notify_idle()

    # ------------------------------------------------------------------
    # Shutdown helpers
    # ------------------------------------------------------------------
    def clear_pending(self) -> int:
        """Fail every waiting task with :class:`QueueClearedError`; return how many."""
        cleared = 0
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_exception(QueueClearedError("Task discarded before it started"))
                cleared += 1
        if self._running == 0:
            self._notify_idle()
        return cleared

    async def wait_idle(self) -> None:
        if self.is_idle:
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(fut)
        await fut

    def _notify_idle(self) -> None:
        if self.pending:
            return
        waiters, self._idle_waiters = self._idle_waiters, []
        for fut in waiters:
            if not fut.done():
                fut.set_result(None)


class FetchQueue:
    """Per-domain + global admission control for fetch tasks."""

    def __init__(
        self,
        max_concurrent: int | None = None,
        per_domain_interval: float | None = None,
    ) -> None:
        self.max_concurrent = (
            max_concurrent if max_concurrent is not None else settings.max_concurrent
        )
        self.per_domain_interval = (
            per_domain_interval
            if per_domain_interval is not None
            else settings.per_domain_interval
        )
        self._global = _Gate(self.max_concurrent)
        self._domains: dict[str, _Gate] = {}

    def _domain_gate(self, domain: str) -> _Gate:
        gate = self._domains.get(domain)
        if gate is None:
            gate = _Gate(1, self.per_domain_interval)
            self._domains[domain] = gate
            logger.debug("[queue] new domain gate for %s", domain)
        return gate

    async def enqueue(self, domain: str, task: Task[T]) -> T:
        """Run *task* once both the domain gate and the global gate admit it.

        Whatever *task* raises is propagated to the caller unchanged.

        Raises:
            QueueClearedError: If :meth:`clear_pending` discarded the task
                before it started.
        """
        gate = self._domain_gate(domain)

        async def _started() -> T:
            gate.mark_start()
            return await task()

        return await gate.run(lambda: self._global.run(_started))

    @property
    def global_load(self) -> int:
        """Pending + running tasks in the global gate."""
        return self._global.pending + self._global.running

    @property
    def domain_count(self) -> int:
        """Number of distinct domains seen so far."""
        return len(self._domains)

    async def drain(self) -> None:
        """Wait until every domain gate and the global gate are idle."""
        await asyncio.gather(*(gate.wait_idle() for gate in list(self._domains.values())))
        await self._global.wait_idle()

    def clear_pending(self) -> int:
        """Discard tasks that have not started yet; running tasks are left alone."""
        cleared = self._global.clear_pending()
        for gate in self._domains.values():
            cleared += gate.clear_pending()
        if cleared:
            logger.info("[queue] cleared %d pending task(s)", cleared)
        return cleared


# Process-wide queue used by the fetch layer.
fetch_queue = FetchQueue()


async def enqueue_fetch(domain: str, task: Task[T]) -> T:
    """Run *task* through the process-wide :data:`fetch_queue`."""
    return await fetch_queue.enqueue(domain, task)
