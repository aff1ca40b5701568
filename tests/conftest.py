"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest

from tests.helpers import FakeClock, FakeRouteProvider
from trajectwatch.adapters.storage.in_memory import (
    InMemoryMeasurementLog,
    InMemoryTrajectStore,
)
from trajectwatch.core.models import Traject, TravelMode
from trajectwatch.runtime.scheduler import TrajectScheduler
from trajectwatch.service import TrajectService


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Provide a temporary data directory for file-backed storage tests."""
    return tmp_path / "data"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeRouteProvider:
    """Provider answering every query with 600 s / 5000 m."""
    return FakeRouteProvider()


@pytest.fixture
def measurement_log() -> InMemoryMeasurementLog:
    return InMemoryMeasurementLog()


@pytest.fixture
def make_traject():
    """Factory fixture for trajects with customizable fields."""

    def _traject(
        traject_id: str = "alpha-beta",
        origin: str = "Alpha",
        destination: str = "Beta",
        interval_minutes: float = 1,
    ) -> Traject:
        return Traject(
            id=traject_id,
            name=f"{origin} -> {destination}",
            origin=origin,
            destination=destination,
            mode=TravelMode.DRIVING,
            interval_minutes=interval_minutes,
            log_file=f"{traject_id}.csv",
        )

    return _traject


@pytest.fixture
async def scheduler(
    provider: FakeRouteProvider,
    measurement_log: InMemoryMeasurementLog,
    clock: FakeClock,
) -> AsyncGenerator[TrajectScheduler, None]:
    """Scheduler on a simulated clock; stopped after the test."""
    sched = TrajectScheduler(
        provider, measurement_log, now=clock.now, sleep=clock.sleep
    )
    yield sched
    await sched.stop()


@pytest.fixture
async def service(
    provider: FakeRouteProvider,
    measurement_log: InMemoryMeasurementLog,
    scheduler: TrajectScheduler,
) -> TrajectService:
    """In-memory service sharing the simulated-clock scheduler."""
    return TrajectService(
        InMemoryTrajectStore(), measurement_log, provider, scheduler=scheduler
    )


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/api/trajects")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
