import pytest

from app.location.session import LocationSession
from app.schemas.location import TrackerPhase


def position(lat=48.8566, lng=2.3522, accuracy=8.0, **extra):
    return {"type": "position", "lat": lat, "lng": lng, "accuracy": accuracy, "timestamp": 1718350000000, **extra}


def test_locate_flow(client, context):
    with client.websocket_connect("/ws/locate") as ws:
        ws.send_json({"type": "start"})
        ask = ws.receive_json()
        assert ask["type"] == "get_position"
        assert ask["options"]["maximumAge"] == 3000

        ws.send_json(position(accuracy=8.0))
        update = ws.receive_json()
        assert update["type"] == "fix_update"
        assert update["fix"]["accuracy"] == 8.0
        assert update["fix"]["level"] == "good"
        assert update["fix"]["captured_at"] == 1718350000.0

        watch = ws.receive_json()
        assert watch["type"] == "watch"
        assert watch["options"]["maximumAge"] == 0

        resolved = ws.receive_json()
        assert resolved["type"] == "resolved"
        assert resolved["address"]["coordinate_key"] == "48.856600,2.352200"

        ws.send_json({"type": "stop"})
        assert ws.receive_json() == {"type": "clear_watch", "watch_id": watch["watch_id"]}
        stopped = ws.receive_json()
        assert stopped == {"type": "stopped", "reason": "user", "best_fix": None}

    assert "48.856600,2.352200" in context.address_cache


def test_permission_error_is_reported_and_watch_continues(client, context):
    with client.websocket_connect("/ws/locate") as ws:
        ws.send_json({"type": "start"})
        ws.receive_json()
        ws.send_json({"type": "position_error", "code": 1, "message": "User denied Geolocation"})

        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["status"]["kind"] == "permission_denied"
        assert error["status"]["duration_ms"] == 3000
        assert ws.receive_json()["type"] == "watch"


@pytest.mark.parametrize(
    "message",
    [{"type": "position", "lat": "here"}, {"type": "teleport"}, ["not", "an", "object"]],
    ids=["bad_position", "unknown_type", "not_object"],
)
def test_bad_messages_get_status(client, context, message):
    with client.websocket_connect("/ws/locate") as ws:
        ws.send_json(message)
        reply = ws.receive_json()
        assert reply["type"] == "status"
        assert reply["status"]["kind"] == "bad_request"


@pytest.mark.asyncio
async def test_session_close_stops_tracking(fake_geocoder, scheduler):
    from app.core.cache import TTLCache

    session = LocationSession(fake_geocoder.reverse, TTLCache(10, 300), scheduler=scheduler)
    session.handle_message({"type": "start"})
    session.handle_message(position(accuracy=30))
    assert session.tracker.phase is TrackerPhase.WATCHING

    await session.close()

    assert session.tracker.phase is TrackerPhase.STOPPED
    assert not session.source.watching
    kinds = []
    while not session.outbox.empty():
        kinds.append(session.outbox.get_nowait()["type"])
    assert kinds[:3] == ["get_position", "fix_update", "watch"]
    assert kinds[-2:] == ["clear_watch", "stopped"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"lat": 95.0},
        {"lng": -200.0},
        {"accuracy": -3.0},
        {"lat": float("nan")},
        {"accuracy": float("inf")},
    ],
    ids=["lat_range", "lng_range", "negative_accuracy", "nan_lat", "inf_accuracy"],
)
@pytest.mark.asyncio
async def test_impossible_positions_are_rejected(fake_geocoder, scheduler, overrides):
    from app.core.cache import TTLCache

    session = LocationSession(fake_geocoder.reverse, TTLCache(10, 300), scheduler=scheduler)
    session.handle_message({"type": "start"})
    session.handle_message(position(**overrides))

    assert session.tracker.best_fix is None
    assert session.tracker.phase is TrackerPhase.ACQUIRING
    replies = [session.outbox.get_nowait() for _ in range(session.outbox.qsize())]
    assert [r["type"] for r in replies] == ["get_position", "status"]
    assert replies[1]["status"]["kind"] == "bad_request"
    assert fake_geocoder.calls == []


@pytest.mark.asyncio
async def test_restart_does_not_tell_page_it_stopped(fake_geocoder, scheduler):
    from app.core.cache import TTLCache

    session = LocationSession(fake_geocoder.reverse, TTLCache(10, 300), scheduler=scheduler)
    session.handle_message({"type": "start"})
    session.handle_message(position(accuracy=30))
    session.handle_message({"type": "start"})
    await session.pipeline.wait_idle()

    kinds = [session.outbox.get_nowait()["type"] for _ in range(session.outbox.qsize())]
    assert "stopped" not in kinds
    assert "resolved" not in kinds
    assert kinds[-2:] == ["clear_watch", "get_position"]
