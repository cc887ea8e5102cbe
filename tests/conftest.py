"""Shared test fixtures."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from planning_poker.config import Settings
from planning_poker.main import create_app
from planning_poker.session.coordinator import SessionCoordinator, get_coordinator


@pytest.fixture
def settings() -> Settings:
    return Settings(
        default_duration_secs=None,
        subscriber_queue_size=4,
        reconnect_delay_secs=5.0,
        max_name_length=16,
    )


@pytest.fixture
def coordinator(settings: Settings) -> SessionCoordinator:
    return SessionCoordinator(settings=settings)


@pytest.fixture
def client(coordinator: SessionCoordinator) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()

