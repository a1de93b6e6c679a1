import httpx
import pytest

from app.core.errors import NotFound, ProviderUnavailable, Timeout
from app.schemas.map import Coordinate
from app.utils.providers import ProviderClient, parse_incident, parse_places

WEATHER_PAYLOAD = {
    "name": "Paris",
    "main": {"temp": 18.4, "feels_like": 17.9, "humidity": 62, "pressure": 1014},
    "wind": {"speed": 3.6},
    "weather": [{"description": "scattered clouds", "icon": "03d"}],
    "sys": {"sunrise": 1718337000, "sunset": 1718395000},
}

ROUTE_PAYLOAD = {
    "routes": [
        {
            "summary": {"lengthInMeters": 5210, "travelTimeInSeconds": 840, "trafficDelayInSeconds": 60},
            "legs": [
                {"points": [{"latitude": 48.85, "longitude": 2.35}, {"latitude": 48.855, "longitude": 2.34}]},
                {"points": [{"latitude": 48.86, "longitude": 2.29}]},
            ],
        }
    ]
}


def make_client(handler):
    seen = []

    def record(request):
        seen.append(request)
        return handler(request)

    client = ProviderClient(
        client=httpx.AsyncClient(transport=httpx.MockTransport(record)),
        weather_key="wkey",
        tomtom_key="tkey",
        places_key="pkey",
    )
    return client, seen


@pytest.mark.asyncio
async def test_weather_is_reshaped():
    client, seen = make_client(lambda r: httpx.Response(200, json=WEATHER_PAYLOAD))
    report = await client.weather(48.85, 2.35)

    assert report.temperature == 18.4
    assert report.description == "scattered clouds"
    assert report.icon_name == "cloud"
    assert report.location_name == "Paris"
    params = seen[0].url.params
    assert params["lat"] == "48.85" and params["lon"] == "2.35"
    assert params["appid"] == "wkey"
    assert params["units"] == "metric"


@pytest.mark.asyncio
async def test_malformed_weather_is_provider_unavailable():
    client, _ = make_client(lambda r: httpx.Response(200, json={"weather": []}))
    with pytest.raises(ProviderUnavailable):
        await client.weather(0, 0)


@pytest.mark.parametrize(
    "status, error",
    [(404, NotFound), (500, ProviderUnavailable), (503, ProviderUnavailable), (429, ProviderUnavailable)],
    ids=["404", "500", "503", "429"],
)
@pytest.mark.asyncio
async def test_http_errors_are_mapped(status, error):
    client, _ = make_client(lambda r: httpx.Response(status, json={"message": "nope"}))
    with pytest.raises(error) as exc:
        await client.weather(0, 0)
    assert exc.value.source == "weather"


@pytest.mark.asyncio
async def test_timeout_is_mapped():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client, _ = make_client(handler)
    with pytest.raises(Timeout) as exc:
        await client.traffic(48.85, 2.35)
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_connection_error_is_mapped():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client, _ = make_client(handler)
    with pytest.raises(ProviderUnavailable):
        await client.places("cafe", (2.3, 48.8, 2.4, 48.9))


@pytest.mark.asyncio
async def test_invalid_json_is_provider_unavailable():
    client, _ = make_client(lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(ProviderUnavailable):
        await client.weather(0, 0)


@pytest.mark.asyncio
async def test_route_joins_leg_points():
    client, seen = make_client(lambda r: httpx.Response(200, json=ROUTE_PAYLOAD))
    start, end = Coordinate(lat=48.85, lng=2.35), Coordinate(lat=48.86, lng=2.29)
    route = await client.route(start, end, profile="walking", traffic=False)

    assert len(route.points) == 3
    assert route.distance_meters == 5210
    assert route.duration_seconds == 840
    assert route.traffic_delay_seconds == 60
    assert route.profile == "walking"

    request = seen[0]
    assert request.url.path.endswith("/48.85,2.35:48.86,2.29/json")
    assert request.url.params["travelMode"] == "pedestrian"
    assert request.url.params["routeType"] == "shortest"
    assert request.url.params["traffic"] == "false"


@pytest.mark.asyncio
async def test_route_without_routes_is_not_found():
    client, _ = make_client(lambda r: httpx.Response(200, json={"routes": []}))
    with pytest.raises(NotFound):
        await client.route(Coordinate(lat=0, lng=0), Coordinate(lat=1, lng=1))


@pytest.mark.asyncio
async def test_traffic_reads_compact_incidents():
    payload = {
        "tm": {
            "poi": [
                {"p": {"x": 2.35, "y": 48.85}, "ic": 6, "ty": 3, "d": "Closed", "f": "Rue A", "t": "Rue B"},
                {"p": {"x": 2.36, "y": 48.86}, "ic": 9, "ty": 1, "d": "Roadworks"},
            ]
        }
    }
    client, seen = make_client(lambda r: httpx.Response(200, json=payload))
    incidents = await client.traffic(48.85, 2.35, 1000)

    assert [i.severity for i in incidents] == ["MAJOR", "MINOR"]
    assert incidents[0].location == "Rue A to Rue B"
    assert incidents[0].color == "#d32f2f"
    assert incidents[0].lat == 48.85
    assert "/s3/" in seen[0].url.path


def test_verbose_incident_shape():
    incident = parse_incident(
        {
            "type": "ACCIDENT",
            "shortDescription": "Crash on A1",
            "severity": "moderate",
            "location": {"address": {"freeformAddress": "A1, Saint-Denis"}},
        }
    )
    assert incident.severity == "MODERATE"
    assert incident.location == "A1, Saint-Denis"
    assert incident.description == "Crash on A1"


def test_places_skip_features_without_geometry():
    data = {
        "features": [
            {
                "properties": {"name": "Café", "categories": ["catering", "catering.cafe"], "formatted": "1 Rue"},
                "geometry": {"coordinates": [2.33, 48.85]},
            },
            {"properties": {"name": "Ghost"}, "geometry": {}},
        ]
    }
    places = parse_places(data)
    assert len(places) == 1
    assert places[0].category == "catering,catering.cafe"
    assert (places[0].lat, places[0].lng) == (48.85, 2.33)
