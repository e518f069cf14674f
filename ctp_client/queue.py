from __future__ import annotations
import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

T = TypeVar('T')

DEFAULT_CONCURRENCY = 10


class AdmissionQueue:
    """Bounds in-flight requests of one client; overflow waits in arrival order.

    A released slot is handed straight to the oldest waiter, so ``in_flight``
    never exceeds ``limit`` and admission is strictly FIFO.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY):
        if limit < 1:
            raise ValueError('limit must be >= 1')
        self.limit = limit
        self._in_flight = 0
        self._pending: Deque[asyncio.Future] = deque()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def pending(self) -> int:
        return sum(1 for f in self._pending if not f.done())

    async def acquire(self) -> None:
        if self._in_flight < self.limit and not self._pending:
            self._in_flight += 1
            return
        fut = asyncio.get_running_loop().create_future()
        self._pending.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # slot was already handed over
                self.release()
            else:
                try:
                    self._pending.remove(fut)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        while self._pending:
            fut = self._pending.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._in_flight -= 1

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        await self.acquire()
        try:
            return await fn()
        finally:
            self.release()
