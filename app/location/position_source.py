# app/location/position_source.py
from __future__ import annotations

import itertools
import logging
from typing import Callable, Hashable, Protocol

from app.core.errors import MapError, position_error
from app.schemas.location import PositionFix, PositionOptions

logger = logging.getLogger(__name__)

FixCallback = Callable[[PositionFix], None]
ErrorCallback = Callable[[MapError], None]


class PositionSource(Protocol):
    """Shape of the platform geolocation API the tracker drives."""

    def get_current_position(self, on_success: FixCallback, on_error: ErrorCallback, options: PositionOptions) -> None:
        ...

    def watch_position(self, on_success: FixCallback, on_error: ErrorCallback, options: PositionOptions) -> Hashable:
        ...

    def clear_watch(self, watch_id: Hashable) -> None:
        ...


class Scheduler(Protocol):
    """Subset of asyncio.AbstractEventLoop the tracker needs for its timers."""

    def time(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[..., object], *args):
        ...


class RemotePositionSource:
    """
    Position source fed by a browser over a socket.

    The tracker's requests become outgoing commands (``get_position``,
    ``watch``, ``clear_watch``) handed to ``send``; fixes and errors reported
    by the page come back in through ``push_fix`` / ``push_error``. A fix
    arriving while a one-shot request is pending answers that request only.
    """

    def __init__(self, send: Callable[[dict], None]):
        self._send = send
        self._pending: list[tuple[FixCallback, ErrorCallback]] = []
        self._watches: dict[int, tuple[FixCallback, ErrorCallback]] = {}
        self._ids = itertools.count(1)

    def get_current_position(self, on_success, on_error, options: PositionOptions) -> None:
        self._pending.append((on_success, on_error))
        self._send({"type": "get_position", "options": options.to_dict()})

    def watch_position(self, on_success, on_error, options: PositionOptions) -> int:
        watch_id = next(self._ids)
        self._watches[watch_id] = (on_success, on_error)
        self._send({"type": "watch", "watch_id": watch_id, "options": options.to_dict()})
        return watch_id

    def clear_watch(self, watch_id) -> None:
        if self._watches.pop(watch_id, None) is not None:
            self._send({"type": "clear_watch", "watch_id": watch_id})

    @property
    def watching(self) -> bool:
        return bool(self._watches)

    def _targets(self, index: int) -> list:
        pending, self._pending = self._pending, []
        if pending:
            return [cbs[index] for cbs in pending]
        return [cbs[index] for cbs in list(self._watches.values())]

    def push_fix(self, fix: PositionFix) -> None:
        targets = self._targets(0)
        if not targets:
            logger.debug("dropping fix, nobody is listening")
        for cb in targets:
            cb(fix)

    def push_error(self, code: int, message: str | None = None) -> None:
        err = position_error(code, message)
        for cb in self._targets(1):
            cb(err)
