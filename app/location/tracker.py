# app/location/tracker.py
"""
Progressive-refinement geolocation.

IDLE -> ACQUIRING -> WATCHING -> STOPPED

``start()`` asks for one quick fix (a cached reading up to 3s old is fine),
then keeps a high-accuracy watch open. Only fixes that beat the current best
accuracy are kept and announced. The watch closes on a timer: 15s at first,
extended 5s at a time up to 30s while nothing excellent (<= 5m) has arrived;
an excellent fix pulls the deadline in to at most 5s away.
"""
from __future__ import annotations

import asyncio
import logging
import math
from functools import partial
from typing import Callable, Hashable, Optional

from app.core.config import (
    EXCELLENT_STOP_MS,
    INITIAL_FIX_MAX_AGE_MS,
    INITIAL_FIX_TIMEOUT_MS,
    TIMEOUT_CEILING_MS,
    TIMEOUT_STEP_MS,
    WATCH_TIMEOUT_MS,
)
from app.core.errors import MapError
from app.location.position_source import PositionSource, Scheduler
from app.schemas.location import (
    AccuracyLevel,
    PositionFix,
    PositionOptions,
    StopReason,
    TrackerPhase,
    TrackerState,
)

logger = logging.getLogger(__name__)

INITIAL_OPTIONS = PositionOptions(
    enable_high_accuracy=True,
    timeout_ms=INITIAL_FIX_TIMEOUT_MS,
    maximum_age_ms=INITIAL_FIX_MAX_AGE_MS,
)
WATCH_OPTIONS = PositionOptions(
    enable_high_accuracy=True,
    timeout_ms=WATCH_TIMEOUT_MS,
    maximum_age_ms=0,
)


class GeolocationTracker:
    def __init__(self, source: PositionSource, scheduler: Optional[Scheduler] = None):
        self.source = source
        self._scheduler = scheduler
        self.state = TrackerState()
        self._watch_id: Hashable | None = None
        self._timer = None
        self._deadline: float | None = None
        # bumped on start/stop so late callbacks from an old session are ignored
        self._generation = 0
        self._fix_listeners: list[Callable[[PositionFix], None]] = []
        self._error_listeners: list[Callable[[MapError], None]] = []
        self._stop_listeners: list[Callable[[StopReason], None]] = []

    # ---- subscriptions ------------------------------------------------------
    def _subscribe(self, listeners: list, callback: Callable) -> Callable[[], None]:
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def on_fix_update(self, callback: Callable[[PositionFix], None]) -> Callable[[], None]:
        return self._subscribe(self._fix_listeners, callback)

    def on_error(self, callback: Callable[[MapError], None]) -> Callable[[], None]:
        return self._subscribe(self._error_listeners, callback)

    def on_stopped(self, callback: Callable[[StopReason], None]) -> Callable[[], None]:
        return self._subscribe(self._stop_listeners, callback)

    # ---- read-only views ----------------------------------------------------
    @property
    def phase(self) -> TrackerPhase:
        return self.state.phase

    @property
    def best_fix(self) -> PositionFix | None:
        return self.state.best_fix

    @property
    def timeout_ms(self) -> int:
        return self.state.timeout_ms

    @property
    def scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    # ---- lifecycle ----------------------------------------------------------
    def start(self) -> None:
        previous = self.state.phase
        if previous in (TrackerPhase.ACQUIRING, TrackerPhase.WATCHING):
            self._teardown()
        self._generation += 1
        gen = self._generation
        self.state = TrackerState(best_fix=None, timeout_ms=WATCH_TIMEOUT_MS, phase=TrackerPhase.ACQUIRING)
        if previous is not TrackerPhase.IDLE:
            # whatever the last session left in flight is stale now
            self._emit(self._stop_listeners, StopReason.RESTARTED)
            if gen != self._generation:
                return
        logger.info("Geolocation: acquiring initial fix")
        self.source.get_current_position(
            partial(self._on_initial_fix, gen),
            partial(self._on_initial_error, gen),
            INITIAL_OPTIONS,
        )

    def stop(self) -> None:
        self._teardown()
        self._generation += 1
        self.state.best_fix = None
        self.state.phase = TrackerPhase.STOPPED
        logger.info("Geolocation: stopped by caller")
        self._emit(self._stop_listeners, StopReason.USER)

    def _finish(self, reason: StopReason) -> None:
        self._teardown()
        self._generation += 1
        self.state.phase = TrackerPhase.STOPPED
        best = self.state.best_fix
        logger.info(
            "Geolocation: done (%s), best accuracy %s",
            reason.value,
            f"{best.accuracy_meters:.1f}m" if best else "n/a",
        )
        self._emit(self._stop_listeners, reason)

    def _teardown(self) -> None:
        if self._watch_id is not None:
            self.source.clear_watch(self._watch_id)
            self._watch_id = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._deadline = None

    # ---- acquisition --------------------------------------------------------
    def _current(self, gen: int, phase: TrackerPhase) -> bool:
        return gen == self._generation and self.state.phase is phase

    def _on_initial_fix(self, gen: int, fix: PositionFix) -> None:
        if not self._current(gen, TrackerPhase.ACQUIRING):
            return
        self._consider(fix)
        # a listener may have stopped us
        if self._current(gen, TrackerPhase.ACQUIRING):
            self._begin_watching(gen)

    def _on_initial_error(self, gen: int, error: MapError) -> None:
        if not self._current(gen, TrackerPhase.ACQUIRING):
            return
        logger.info("Geolocation: initial fix failed (%s), watching anyway", error.kind)
        self._emit(self._error_listeners, error)
        if self._current(gen, TrackerPhase.ACQUIRING):
            self._begin_watching(gen)

    def _begin_watching(self, gen: int) -> None:
        self.state.phase = TrackerPhase.WATCHING
        watch_id = self.source.watch_position(
            partial(self._on_watch_fix, gen),
            partial(self._on_watch_error, gen),
            WATCH_OPTIONS,
        )
        if not self._current(gen, TrackerPhase.WATCHING):
            # stopped from inside a synchronously delivered fix
            self.source.clear_watch(watch_id)
            return
        self._watch_id = watch_id
        if self._timer is None:
            self._arm(self.state.timeout_ms)

    def _on_watch_fix(self, gen: int, fix: PositionFix) -> None:
        if self._current(gen, TrackerPhase.WATCHING):
            self._consider(fix)

    def _on_watch_error(self, gen: int, error: MapError) -> None:
        # reported, but only stop() or the timer ends watching
        if self._current(gen, TrackerPhase.WATCHING):
            logger.info("Geolocation: watch error (%s)", error.kind)
            self._emit(self._error_listeners, error)

    def _consider(self, fix: PositionFix) -> bool:
        if not math.isfinite(fix.accuracy_meters) or fix.accuracy_meters < 0:
            logger.debug("Geolocation: ignoring fix with accuracy %r", fix.accuracy_meters)
            return False
        best = self.state.best_fix
        if best is not None and fix.accuracy_meters >= best.accuracy_meters:
            logger.debug("Geolocation: discarding %.1fm fix (best %.1fm)", fix.accuracy_meters, best.accuracy_meters)
            return False

        self.state.best_fix = fix
        logger.debug("Geolocation: new best fix %.1fm", fix.accuracy_meters)
        if fix.level is AccuracyLevel.EXCELLENT:
            self._shorten_window()
        self._emit(self._fix_listeners, fix)
        return True

    # ---- progressive timeout ------------------------------------------------
    def _arm(self, delay_ms: int) -> None:
        if self._timer is not None:
            self._timer.cancel()
        gen = self._generation
        self._deadline = self.scheduler.time() + delay_ms / 1000.0
        self._timer = self.scheduler.call_later(delay_ms / 1000.0, partial(self._on_window_elapsed, gen))

    def _shorten_window(self) -> None:
        self.state.timeout_ms = min(self.state.timeout_ms, EXCELLENT_STOP_MS)
        if self._timer is None or self._deadline is None:
            # still acquiring; _begin_watching arms with the reduced window
            return
        remaining_ms = (self._deadline - self.scheduler.time()) * 1000.0
        if remaining_ms > EXCELLENT_STOP_MS:
            self._arm(EXCELLENT_STOP_MS)

    def _on_window_elapsed(self, gen: int) -> None:
        if not self._current(gen, TrackerPhase.WATCHING):
            return
        self._timer = None
        self._deadline = None

        best = self.state.best_fix
        if best is not None and best.level is AccuracyLevel.EXCELLENT:
            self._finish(StopReason.ACCURACY_REACHED)
        elif self.state.timeout_ms < TIMEOUT_CEILING_MS:
            self.state.timeout_ms = min(self.state.timeout_ms + TIMEOUT_STEP_MS, TIMEOUT_CEILING_MS)
            logger.debug("Geolocation: extending window to %dms", self.state.timeout_ms)
            self._arm(TIMEOUT_STEP_MS)
        else:
            self._finish(StopReason.TIMEOUT_CEILING)

    @staticmethod
    def _emit(listeners: list, payload) -> None:
        for cb in list(listeners):
            cb(payload)
