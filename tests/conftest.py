import os
import pytest
from fastapi.testclient import TestClient
import sys
from pathlib import Path

# Add the project root (WORKDIR) to sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.location.position_source import RemotePositionSource  # noqa: E402
from tests.fakes import FakeGeocoder, FakeProviders, FakeScheduler  # noqa: E402


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def sent():
    return []


@pytest.fixture
def source(sent):
    return RemotePositionSource(sent.append)


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder(missing={"Nowhere"})


@pytest.fixture
def fake_providers():
    return FakeProviders()


@pytest.fixture
def context(fake_geocoder, fake_providers):
    from app.core.loader import build_context
    from app.core.registry import set_context

    ctx = build_context(geocoder=fake_geocoder, providers=fake_providers)
    set_context(ctx)
    yield ctx
    set_context(None)


@pytest.fixture(scope="session")
def client():
    os.environ["TESTING"] = "1"
    from app.main import app

    # Using context manager ensures lifespan runs before the first request
    with TestClient(app) as c:
        yield c
