# app/schemas/map.py
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import STATUS_MESSAGE_MS


class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.lat},{self.lng}"


class GeocodeResult(BaseModel):
    lat: float
    lng: float
    display_name: str
    bounds: dict | None = None
    components: dict = Field(default_factory=dict)

    def __str__(self) -> str:
        return self.display_name


class ResolvedAddress(BaseModel):
    coordinate_key: str
    full_text: str
    short_text: str = ""
    details: dict = Field(default_factory=dict)

    def __str__(self) -> str:
        return self.full_text

    def __repr__(self) -> str:
        return f"ResolvedAddress({self.coordinate_key!r}, {self.short_text or self.full_text!r})"


class WeatherReport(BaseModel):
    temperature: float
    description: str
    humidity: float
    wind_speed: float
    icon: str
    icon_name: str = "cloud"
    feels_like: float | None = None
    pressure: float | None = None
    sunrise: int | None = None  # epoch seconds
    sunset: int | None = None
    location_name: str = ""

    model_config = {"extra": "ignore"}


class TrafficIncident(BaseModel):
    type: str = "UNKNOWN"
    description: str = ""
    location: str = ""
    severity: str = "UNKNOWN"
    color: str = ""
    lat: float | None = None
    lng: float | None = None


class RouteResult(BaseModel):
    points: list[Coordinate]
    distance_meters: float
    duration_seconds: float
    traffic_delay_seconds: float = 0
    profile: str = "driving"


class Place(BaseModel):
    name: str = ""
    category: str = ""
    address: str = ""
    lat: float
    lng: float


class MeasureRequest(BaseModel):
    points: list[Coordinate] = Field(..., min_length=2)


class MeasureSegment(BaseModel):
    start: Coordinate
    end: Coordinate
    distance_meters: float
    bearing: float


class MeasureResult(BaseModel):
    total_meters: float
    segments: list[MeasureSegment]
    text: str


class StatusMessage(BaseModel):
    """What the page shows in its status bar; it removes itself after duration_ms."""

    kind: str
    message: str
    duration_ms: int = STATUS_MESSAGE_MS


class LocationInfo(BaseModel):
    lat: float
    lng: float
    address: ResolvedAddress | None = None
    weather: WeatherReport | None = None
    traffic: list[TrafficIncident] = Field(default_factory=list)
    errors: dict[str, StatusMessage] = Field(default_factory=dict)
