import pytest

from app.core.errors import Timeout


def test_home_page_renders(client, context):
    resp = client.get("/")
    assert resp.status_code == 200, resp.text
    assert "Location Finder Map" in resp.text
    assert 'data-zoom="13"' in resp.text
    assert "5 min" in resp.text


def test_geocode_is_cached(client, context, fake_geocoder):
    first = client.get("/api/geocode", params={"q": "Paris"})
    second = client.get("/api/geocode", params={"q": "Paris"})

    assert first.status_code == 200, first.text
    assert first.json() == second.json()
    assert first.json()["display_name"].startswith("Paris")
    assert fake_geocoder.calls == [("geocode", "Paris")]


def test_geocode_not_found(client, context):
    resp = client.get("/api/geocode", params={"q": "Nowhere"})
    assert resp.status_code == 404
    detail = resp.json()["detail"]
    assert detail["kind"] == "not_found"
    assert detail["retryable"] is False


def test_geocode_blank_query(client, context):
    resp = client.get("/api/geocode", params={"q": "   "})
    assert resp.status_code == 400


def test_reverse(client, context):
    resp = client.get("/api/reverse", params={"lat": 48.8566, "lng": 2.3522})
    assert resp.status_code == 200, resp.text
    assert resp.json()["coordinate_key"] == "48.856600,2.352200"


@pytest.mark.parametrize(
    "params",
    [{"lat": 91, "lng": 0}, {"lat": 0, "lng": -181}, {"lat": "north", "lng": 0}],
    ids=["lat_range", "lng_range", "not_a_number"],
)
def test_reverse_rejects_bad_coordinates(client, context, params):
    resp = client.get("/api/reverse", params=params)
    assert resp.status_code == 422


def test_weather(client, context):
    resp = client.get("/api/weather", params={"lat": 48.85, "lng": 2.35})
    assert resp.status_code == 200, resp.text
    assert resp.json()["icon_name"] == "sun"


def test_weather_upstream_timeout(client, context, fake_providers):
    fake_providers.fail["weather"] = Timeout("weather request timed out", source="weather")
    resp = client.get("/api/weather", params={"lat": 48.85, "lng": 2.35})
    assert resp.status_code == 504
    assert resp.json()["detail"]["retryable"] is True


def test_traffic(client, context):
    resp = client.get("/api/traffic", params={"lat": 48.85, "lng": 2.35, "radius": 2000})
    assert resp.status_code == 200, resp.text
    assert resp.json()[0]["severity"] == "MINOR"


def test_location_info(client, context):
    resp = client.get("/api/location-info", params={"lat": 48.85, "lng": 2.35})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["address"]["short_text"]
    assert data["weather"]["temperature"] == 18.5
    assert data["errors"] == {}


def test_route(client, context):
    params = {"start_lat": 48.85, "start_lng": 2.35, "end_lat": 48.86, "end_lng": 2.29, "profile": "cycling"}
    resp = client.get("/api/route", params=params)
    assert resp.status_code == 200, resp.text
    assert resp.json()["profile"] == "cycling"
    assert len(resp.json()["points"]) == 2


def test_route_unknown_profile(client, context):
    params = {"start_lat": 48.85, "start_lng": 2.35, "end_lat": 48.86, "end_lng": 2.29, "profile": "boat"}
    resp = client.get("/api/route", params=params)
    assert resp.status_code == 400


def test_places(client, context):
    params = {"q": "cafe", "west": 2.3, "south": 48.8, "east": 2.4, "north": 48.9}
    resp = client.get("/api/places", params=params)
    assert resp.status_code == 200, resp.text
    assert resp.json()[0]["name"] == "Café de Flore"


def test_places_inverted_bounds(client, context):
    params = {"q": "cafe", "west": 2.3, "south": 48.9, "east": 2.4, "north": 48.8}
    resp = client.get("/api/places", params=params)
    assert resp.status_code == 400


def test_measure(client, context):
    body = {"points": [{"lat": 48.8566, "lng": 2.3522}, {"lat": 48.8606, "lng": 2.3376}, {"lat": 48.8584, "lng": 2.2945}]}
    resp = client.post("/api/measure", json=body)
    assert resp.status_code == 200, resp.text
    data = resp.json()

    assert len(data["segments"]) == 2
    assert data["total_meters"] == pytest.approx(sum(s["distance_meters"] for s in data["segments"]), abs=0.05)
    # Hôtel de Ville -> Louvre -> Eiffel Tower is a little over 4 km
    assert 4000 < data["total_meters"] < 4500
    assert data["text"].endswith(" km")
    # heading a little south of due west
    assert 260 < data["segments"][1]["bearing"] < 270


def test_measure_needs_two_points(client, context):
    resp = client.post("/api/measure", json={"points": [{"lat": 0, "lng": 0}]})
    assert resp.status_code == 422


def test_cache_stats_and_clear(client, context):
    client.get("/api/geocode", params={"q": "Paris"})
    stats = client.get("/api/cache").json()
    assert stats["geocode"]["size"] == 1
    assert set(stats) == {"geocode", "weather", "route", "address"}

    resp = client.delete("/api/cache/geocode")
    assert resp.json() == {"cleared": ["geocode"]}
    assert client.get("/api/cache").json()["geocode"]["size"] == 0

    resp = client.delete("/api/cache")
    assert sorted(resp.json()["cleared"]) == ["address", "geocode", "route", "weather"]


def test_clear_unknown_cache(client, context):
    resp = client.delete("/api/cache/tiles")
    assert resp.status_code == 404
