"""
Global pytest fixtures for the Shorty Platform test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide isolated in-memory Storage for direct testing
    - Provide a LinkStore wired to that storage and to a controllable clock

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shorty_platform.config import Settings
from shorty_platform.manager.link_store import LinkStore
from shorty_platform.storage.storage import Storage

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def settings() -> Settings:
    return Settings(public_url="https://sho.rt", cleanup_enabled=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory storage backend."""
    return Storage()


@pytest.fixture
def link_store(storage: Storage, settings: Settings, clock: FakeClock) -> LinkStore:
    """LinkStore over the storage fixture, driven by the fake clock."""
    return LinkStore(storage=storage, settings=settings, clock=clock)


@pytest.fixture
def client(settings: Settings, link_store: LinkStore) -> TestClient:
    """
    Provide a fresh TestClient with a new app instance.

    The app shares the `link_store` fixture so tests can move the clock or
    inspect storage behind the HTTP layer.
    """
    app = create_app(settings=settings, link_store=link_store)
    return TestClient(app)
