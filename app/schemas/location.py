# app/schemas/location.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from app.core.config import ACCURACY_THRESHOLDS
from app.core.errors import MapError


class TrackerPhase(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    WATCHING = "watching"
    STOPPED = "stopped"


class AccuracyLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class StopReason(str, Enum):
    USER = "user"
    ACCURACY_REACHED = "accuracy_reached"
    TIMEOUT_CEILING = "timeout_ceiling"
    RESTARTED = "restarted"  # start() replaced an earlier session


def classify_accuracy(accuracy_meters: float) -> AccuracyLevel:
    if accuracy_meters <= ACCURACY_THRESHOLDS["EXCELLENT"]:
        return AccuracyLevel.EXCELLENT
    if accuracy_meters <= ACCURACY_THRESHOLDS["GOOD"]:
        return AccuracyLevel.GOOD
    if accuracy_meters <= ACCURACY_THRESHOLDS["ACCEPTABLE"]:
        return AccuracyLevel.ACCEPTABLE
    return AccuracyLevel.POOR


def suggested_zoom(accuracy_meters: float) -> int:
    if accuracy_meters <= 10:
        return 18
    if accuracy_meters <= 50:
        return 17
    if accuracy_meters <= 100:
        return 16
    return 15


@dataclass(frozen=True)
class PositionFix:
    lat: float
    lng: float
    accuracy_meters: float
    captured_at: float = field(default_factory=time.time)
    altitude: float | None = None
    heading: float | None = None
    speed: float | None = None  # m/s

    @property
    def level(self) -> AccuracyLevel:
        return classify_accuracy(self.accuracy_meters)

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracy": self.accuracy_meters,
            "captured_at": self.captured_at,
            "altitude": self.altitude,
            "heading": self.heading,
            "speed": self.speed,
            "level": self.level.value,
            "zoom": suggested_zoom(self.accuracy_meters),
        }


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout_ms: int = 15000
    maximum_age_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "enableHighAccuracy": self.enable_high_accuracy,
            "timeout": self.timeout_ms,
            "maximumAge": self.maximum_age_ms,
        }


@dataclass
class TrackerState:
    best_fix: PositionFix | None = None
    timeout_ms: int = 0
    phase: TrackerPhase = TrackerPhase.IDLE


@dataclass(frozen=True)
class AddressFailure:
    """Address lookup failed; the fix is still good enough to show coordinates."""

    fix: PositionFix
    coordinate_key: str
    error: MapError

    def to_dict(self) -> dict:
        return {
            "coordinate_key": self.coordinate_key,
            "fix": self.fix.to_dict(),
            "error": self.error.to_dict(),
        }
