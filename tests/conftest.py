"""Shared fixtures for link-relay tests."""

import pytest
from fastapi.testclient import TestClient

from link_relay.config import Settings
from link_relay.main import create_app
from link_relay.relay import RelayService
from link_relay.session import SessionStore

API = "/api/relay/session"


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def make_settings(**overrides) -> Settings:
    values = {
        "DEFAULT_SESSION_TTL_SECONDS": 180,
        "MAX_SESSION_TTL_SECONDS": 900,
        "MAX_PAYLOAD_BYTES": 8192,
        "MAX_QUEUE_MESSAGES": 32,
        "SESSION_SWEEP_MS": 30000,
        "ALLOWED_ORIGINS": "",
        "RELAY_API_PREFIX": API,
        "STATIC_ROOT": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def relay(store, settings):
    return RelayService(store, settings)


@pytest.fixture
def app(settings, clock):
    app = create_app(settings)
    app.state.store.clock = clock
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
