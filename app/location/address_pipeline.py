# app/location/address_pipeline.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from app.core.cache import TTLCache
from app.core.coalescer import RequestCoalescer
from app.core.errors import Cancelled, MapError, ProviderUnavailable
from app.schemas.location import AddressFailure, PositionFix, StopReason
from app.schemas.map import ResolvedAddress
from app.utils.helpers import coordinate_key

logger = logging.getLogger(__name__)

Resolver = Callable[[float, float], Awaitable[ResolvedAddress]]


class AddressResolutionPipeline:
    """
    Turn tracker fixes into addresses, keeping only the newest one in play.

    Fixes are keyed by their coordinate rounded to 6 decimals. A cached key
    is answered straight away. Otherwise the previous lookup is cancelled and
    a new one started; a lookup whose key is no longer current neither writes
    the cache nor reaches the listeners.
    """

    def __init__(self, resolver: Resolver, cache: TTLCache, coalescer: RequestCoalescer | None = None):
        self._resolver = resolver
        self.cache = cache
        self.coalescer = coalescer or RequestCoalescer("address")
        self._current_key: str | None = None
        # bumped whenever the current lookup changes hands; stale tasks compare against it
        self._dispatch = 0
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe: list[Callable[[], None]] = []
        self._resolved_listeners: list[Callable[[ResolvedAddress], None]] = []
        self._failed_listeners: list[Callable[[AddressFailure], None]] = []
        self.latest: ResolvedAddress | None = None

    def on_resolved(self, callback: Callable[[ResolvedAddress], None]) -> None:
        self._resolved_listeners.append(callback)

    def on_failed(self, callback: Callable[[AddressFailure], None]) -> None:
        self._failed_listeners.append(callback)

    def attach(self, tracker) -> None:
        self._unsubscribe = [
            tracker.on_fix_update(self.handle_fix),
            tracker.on_stopped(self._on_tracker_stopped),
        ]

    def detach(self) -> None:
        for unsub in self._unsubscribe:
            unsub()
        self._unsubscribe = []

    @property
    def current_key(self) -> str | None:
        return self._current_key

    def handle_fix(self, fix: PositionFix) -> None:
        key = coordinate_key(fix.lat, fix.lng)

        cached = self.cache.get(key)
        if cached is not None:
            # a lookup still running for this key would only repeat the cached answer
            if self._current_key is not None and self.coalescer.cancel(self._current_key):
                logger.debug("cache hit %s cancelled lookup %s", key, self._current_key)
            self._current_key = key
            self._dispatch += 1
            logger.debug("address cache hit %s", key)
            self._emit_resolved(cached)
            return

        if key == self._current_key and self.coalescer.in_flight(key):
            # same spot, lookup already running
            return

        self._supersede(key)
        self._current_key = key
        self._dispatch += 1
        task = asyncio.get_running_loop().create_task(self._resolve(key, fix, self._dispatch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        if self._current_key is not None:
            self.coalescer.cancel(self._current_key)
        self._current_key = None
        self._dispatch += 1

    def _supersede(self, key: str) -> None:
        prev = self._current_key
        if prev is not None and prev != key and self.coalescer.cancel(prev):
            logger.debug("superseded address lookup %s by %s", prev, key)

    def _on_tracker_stopped(self, reason: StopReason) -> None:
        # an auto-stop still wants the last address; an explicit stop or a restart does not
        if reason in (StopReason.USER, StopReason.RESTARTED):
            self.cancel()

    def _live(self, key: str, dispatch: int) -> bool:
        return key == self._current_key and dispatch == self._dispatch

    async def _resolve(self, key: str, fix: PositionFix, dispatch: int) -> None:
        if not self._live(key, dispatch):
            # superseded before this task got to run
            return
        try:
            address = await self.coalescer.request(key, lambda: self._resolver(fix.lat, fix.lng))
        except Cancelled:
            logger.debug("address lookup %s cancelled", key)
            return
        except MapError as e:
            self._fail(key, fix, dispatch, e)
            return
        except Exception as e:
            logger.exception("address lookup %s raised", key)
            self._fail(key, fix, dispatch, ProviderUnavailable(f"Address lookup failed: {e}", source="geocoding"))
            return

        if not self._live(key, dispatch):
            return
        if address.coordinate_key != key:
            address = address.model_copy(update={"coordinate_key": key})
        self.cache.set(key, address)
        self._emit_resolved(address)

    def _fail(self, key: str, fix: PositionFix, dispatch: int, error: MapError) -> None:
        if not self._live(key, dispatch):
            return
        logger.warning("address lookup %s failed: %s", key, error.message)
        failure = AddressFailure(fix=fix, coordinate_key=key, error=error)
        for cb in list(self._failed_listeners):
            cb(failure)

    def _emit_resolved(self, address: ResolvedAddress) -> None:
        self.latest = address
        for cb in list(self._resolved_listeners):
            cb(address)

    async def wait_idle(self) -> None:
        """Let every lookup started so far settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
