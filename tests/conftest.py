"""Shared fixtures: a fresh registry and app per test, no real process exits."""

import pytest
from fastapi.testclient import TestClient

from ecowitt_relay.config import Settings
from ecowitt_relay.main import create_app
from ecowitt_relay.services import MetricsRegistry


class RecordingTerminator:
    """Stands in for os._exit and remembers the requested statuses."""

    def __init__(self):
        self.statuses: list[int] = []

    def __call__(self, status: int) -> None:
        self.statuses.append(status)


@pytest.fixture
def settings() -> Settings:
    return Settings(process_metrics=False)


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def terminator() -> RecordingTerminator:
    return RecordingTerminator()


@pytest.fixture
def app(settings, metrics, terminator):
    return create_app(settings, metrics=metrics, terminate=terminator)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
