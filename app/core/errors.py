# app/core/errors.py
"""
Failure taxonomy shared by the providers, the lookups and the location pipeline.

Every failure the UI can see is a ``MapError`` with a ``kind``. ``Cancelled``
is part of the family so callers can catch it explicitly, but it never reaches
a UI callback.
"""
from __future__ import annotations


class MapError(Exception):
    kind = "general"
    retryable = False
    status_code = 500
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, source: str = "general"):
        super().__init__(message or self.user_message)
        self.message = message or self.user_message
        self.source = source

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "source": self.source,
            "message": self.message,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, source={self.source!r})"


class NotFound(MapError):
    kind = "not_found"
    status_code = 404
    user_message = "Location not found"


class ProviderUnavailable(MapError):
    kind = "provider_unavailable"
    retryable = True
    status_code = 502
    user_message = "Service unavailable. Please check your network."


class PermissionDenied(MapError):
    kind = "permission_denied"
    status_code = 403
    user_message = "Location access denied. Please check browser settings."


class Timeout(MapError):
    kind = "timeout"
    retryable = True
    status_code = 504
    user_message = "Request timed out. Retrying..."


class Cancelled(MapError):
    kind = "cancelled"
    status_code = 499
    user_message = "Request superseded"


# browser PositionError codes
POSITION_ERROR_CODES = {
    1: PermissionDenied,
    2: ProviderUnavailable,
    3: Timeout,
}

POSITION_ERROR_MESSAGES = {
    1: "Location access denied. Please check browser settings.",
    2: "Location unavailable. Please check GPS/network.",
    3: "Location request timed out. Retrying...",
}


def position_error(code: int, message: str | None = None) -> MapError:
    """
    Map a browser-style geolocation error code onto the taxonomy.
    Unknown codes become a plain MapError.
    """
    cls = POSITION_ERROR_CODES.get(code)
    text = POSITION_ERROR_MESSAGES.get(code, "Location error. Please try again.")
    if cls is None:
        return MapError(message or text, source="geolocation")
    return cls(message or text, source="geolocation")
