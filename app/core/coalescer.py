# app/core/coalescer.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, TypeVar

from app.core.errors import Cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """
    Share one in-flight task between concurrent callers asking for the same key.

    The first ``request(key, factory)`` starts ``factory()`` as a task; later
    callers for that key await the same task until it settles. ``cancel(key)``
    cancels the shared task, and every waiter gets ``Cancelled`` instead of a
    bare ``asyncio.CancelledError`` so superseded work can be told apart from
    the waiter itself being cancelled.
    """

    def __init__(self, name: str = "coalescer"):
        self.name = name
        self._inflight: Dict[Hashable, asyncio.Task] = {}
        self.started = 0
        self.joined = 0

    async def request(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is not None and not task.done():
            self.joined += 1
            logger.debug("[%s] joining in-flight %r", self.name, key)
        else:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            self.started += 1
            task.add_done_callback(lambda t, k=key: self._settled(k, t))
            logger.debug("[%s] started %r", self.name, key)

        try:
            # shield so one waiter going away does not cancel the others
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise Cancelled(f"request {key!r} was superseded", source=self.name) from None
            raise

    def _settled(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("[%s] %r failed: %r", self.name, key, task.exception())

    def cancel(self, key: Hashable) -> bool:
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return False
        logger.debug("[%s] cancelling %r", self.name, key)
        return task.cancel()

    def cancel_all(self) -> int:
        n = 0
        for key in list(self._inflight):
            n += int(self.cancel(key))
        return n

    def in_flight(self, key: Hashable) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return sum(1 for t in self._inflight.values() if not t.done())
