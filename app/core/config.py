# app/core/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parents[2]
TEMPLATES_DIR = ROOT_DIR / "templates"
STATIC_DIR = ROOT_DIR / "static"

# Provider keys (keep them in .env, never in the page)
WEATHER_API_KEY = os.getenv("WEATHER_API_KEY", "")
TOMTOM_API_KEY = os.getenv("TOMTOM_API_KEY", "")
PLACES_API_KEY = os.getenv("PLACES_API_KEY", "")

# Geocoder settings
# Nominatim policy wants a real contact in the user agent
GEOCODER_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "location-finder-map/2.0")
GEOCODER_TIMEOUT = 10  # seconds
GEOCODER_DOMAIN = "nominatim.openstreetmap.org"
GEOCODER_SCHEME = "https"
GEOCODER_MIN_INTERVAL_SEC = 1.1
REVERSE_ZOOM = 18

# Upstream endpoints
WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
WEATHER_UNITS = "metric"
TRAFFIC_INCIDENTS_URL = "https://api.tomtom.com/traffic/services/4/incidentDetails"
ROUTING_URL = "https://api.tomtom.com/routing/1/calculateRoute"
PLACES_URL = "https://api.geoapify.com/v2/places"

PROXY_TIMEOUT_SEC = 10.0
TRAFFIC_RADIUS_M = 5000

# One cache per resource type, same sizing everywhere
CACHE_MAX_SIZE = 100
CACHE_TTL_SEC = 5 * 60
CACHE_RESOURCES = ("geocode", "weather", "route", "address")

# Geolocation
ACCURACY_THRESHOLDS = {
    "EXCELLENT": 5,
    "GOOD": 10,
    "ACCEPTABLE": 20,
}
INITIAL_FIX_TIMEOUT_MS = 15000
INITIAL_FIX_MAX_AGE_MS = 3000
WATCH_TIMEOUT_MS = 15000
EXCELLENT_STOP_MS = 5000
TIMEOUT_STEP_MS = 5000
TIMEOUT_CEILING_MS = 30000
COORD_PRECISION = 6  # ~0.11m at the equator

STATUS_MESSAGE_MS = 3000

DEFAULT_VIEW = {"lat": 51.505, "lng": -0.09, "zoom": 13}

TILE_LAYER = {
    "url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "attribution": "© OpenStreetMap contributors",
    "max_zoom": 19,
}

# profile -> TomTom travelMode / routeType
ROUTING_PROFILES = {
    "driving": {"travel_mode": "car", "route_type": "fastest"},
    "walking": {"travel_mode": "pedestrian", "route_type": "shortest"},
    "cycling": {"travel_mode": "bicycle", "route_type": "fastest"},
}
DEFAULT_ROUTING_PROFILE = "driving"

TRAFFIC_SEVERITY_COLORS = {
    "MINOR": "#fbc02d",
    "MODERATE": "#f57c00",
    "MAJOR": "#d32f2f",
    "UNKNOWN": "#1976d2",
}

# OpenWeather icon code -> font-awesome name
WEATHER_ICONS = {
    "01d": "sun",
    "01n": "moon",
    "02d": "cloud-sun",
    "02n": "cloud-moon",
    "03d": "cloud",
    "03n": "cloud",
    "04d": "cloud",
    "04n": "cloud",
    "09d": "cloud-showers-heavy",
    "09n": "cloud-showers-heavy",
    "10d": "cloud-sun-rain",
    "10n": "cloud-moon-rain",
    "11d": "bolt",
    "11n": "bolt",
    "13d": "snowflake",
    "13n": "snowflake",
    "50d": "smog",
    "50n": "smog",
}

MEASURE_PRECISION = 2
