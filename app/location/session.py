# app/location/session.py
from __future__ import annotations

import asyncio
import logging
import math
import time

from app.core.cache import TTLCache
from app.core.errors import MapError
from app.location.address_pipeline import AddressResolutionPipeline, Resolver
from app.location.position_source import RemotePositionSource
from app.location.tracker import GeolocationTracker
from app.schemas.location import AddressFailure, PositionFix, StopReason, TrackerPhase
from app.schemas.map import ResolvedAddress, StatusMessage

logger = logging.getLogger(__name__)


def parse_position(msg: dict) -> PositionFix:
    """Build a fix from a page-reported position, rejecting impossible values."""
    lat, lng, accuracy = float(msg["lat"]), float(msg["lng"]), float(msg["accuracy"])
    if not all(math.isfinite(v) for v in (lat, lng, accuracy)):
        raise ValueError("lat, lng and accuracy must be finite")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValueError(f"coordinate out of range: {lat},{lng}")
    if accuracy < 0:
        raise ValueError(f"negative accuracy: {accuracy}")

    # browsers report epoch milliseconds
    ts = msg.get("timestamp")
    return PositionFix(
        lat=lat,
        lng=lng,
        accuracy_meters=accuracy,
        captured_at=float(ts) / 1000.0 if ts else time.time(),
        altitude=msg.get("altitude"),
        heading=msg.get("heading"),
        speed=msg.get("speed"),
    )


class LocationSession:
    """
    One page's locate-me flow: tracker, address pipeline and the messages
    going back to the page, queued on ``outbox`` for the socket to drain.

    Incoming messages:
      {"type": "start"} / {"type": "stop"}
      {"type": "position", "lat", "lng", "accuracy", ["timestamp", "altitude", "heading", "speed"]}
      {"type": "position_error", "code", ["message"]}
    """

    def __init__(self, resolver: Resolver, address_cache: TTLCache, scheduler=None):
        self.outbox: asyncio.Queue = asyncio.Queue()
        self.source = RemotePositionSource(self.outbox.put_nowait)
        self.tracker = GeolocationTracker(self.source, scheduler)
        self.pipeline = AddressResolutionPipeline(resolver, address_cache)

        # fix_update goes out before any address derived from it
        self.tracker.on_fix_update(self._send_fix)
        self.tracker.on_error(self._send_error)
        self.tracker.on_stopped(self._send_stopped)
        self.pipeline.attach(self.tracker)
        self.pipeline.on_resolved(self._send_resolved)
        self.pipeline.on_failed(self._send_address_failed)

    def send(self, message: dict) -> None:
        self.outbox.put_nowait(message)

    def handle_message(self, msg: dict) -> None:
        kind = msg.get("type")
        if kind == "start":
            self.tracker.start()
        elif kind == "stop":
            self.tracker.stop()
        elif kind == "position":
            try:
                fix = parse_position(msg)
            except (KeyError, TypeError, ValueError) as e:
                self.send_status("bad_request", f"Malformed position message: {e}")
                return
            self.source.push_fix(fix)
        elif kind == "position_error":
            try:
                code = int(msg.get("code", 0))
            except (TypeError, ValueError):
                code = 0
            self.source.push_error(code, msg.get("message"))
        else:
            self.send_status("bad_request", f"Unknown message type: {kind!r}")

    async def close(self) -> None:
        if self.tracker.phase in (TrackerPhase.ACQUIRING, TrackerPhase.WATCHING):
            self.tracker.stop()
        self.pipeline.detach()
        self.pipeline.cancel()
        await self.pipeline.wait_idle()

    # ---- outgoing -----------------------------------------------------------
    def send_status(self, kind: str, message: str) -> None:
        self.send({"type": "status", "status": StatusMessage(kind=kind, message=message).model_dump()})

    def _send_fix(self, fix: PositionFix) -> None:
        self.send({"type": "fix_update", "fix": fix.to_dict()})

    def _send_error(self, error: MapError) -> None:
        status = StatusMessage(kind=error.kind, message=error.message)
        self.send({"type": "error", "status": status.model_dump()})

    def _send_stopped(self, reason: StopReason) -> None:
        if reason is StopReason.RESTARTED:
            return
        best = self.tracker.best_fix
        self.send({"type": "stopped", "reason": reason.value, "best_fix": best.to_dict() if best else None})

    def _send_resolved(self, address: ResolvedAddress) -> None:
        self.send({"type": "resolved", "address": address.model_dump()})

    def _send_address_failed(self, failure: AddressFailure) -> None:
        status = StatusMessage(kind=failure.error.kind, message=failure.error.message)
        payload = failure.to_dict()
        payload["status"] = status.model_dump()
        self.send({"type": "address_failed", **payload})
