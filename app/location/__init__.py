from app.location.address_pipeline import AddressResolutionPipeline
from app.location.position_source import PositionSource, RemotePositionSource
from app.location.tracker import GeolocationTracker

__all__ = [
    "AddressResolutionPipeline",
    "GeolocationTracker",
    "PositionSource",
    "RemotePositionSource",
]
