"""Test doubles shared across test modules."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from trajectwatch.core.models import Measurement, RouteResult

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

OK_RESULT = RouteResult(
    duration_seconds=600, distance_meters=5000, element_status="OK", api_status="OK"
)


async def settle(rounds: int = 50) -> None:
    """Let ready tasks run until the loop is quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeRouteProvider:
    """Route provider returning canned results per (origin, destination).

    An Exception value is raised instead of returned.
    """

    def __init__(
        self,
        responses: dict[tuple[str, str], RouteResult | Exception] | None = None,
        default: RouteResult | Exception = OK_RESULT,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default
        self.calls: list[tuple[str, str, str]] = []

    async def route(self, origin: str, destination: str, mode: str) -> RouteResult:
        self.calls.append((origin, destination, str(mode)))
        outcome = self.responses.get((origin, destination), self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class _Sleeper:
    deadline: datetime
    future: asyncio.Future[None]


@dataclass
class FakeClock:
    """Simulated clock: `now` for timestamps, `sleep` for timers.

    Sleepers only wake when the test calls advance().
    """

    current: datetime = START
    _sleepers: list[_Sleeper] = field(default_factory=list)

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._sleepers.append(_Sleeper(self.current + timedelta(seconds=seconds), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every timer that falls due on the way."""
        target = self.current + timedelta(seconds=seconds)
        await settle()
        while True:
            due = [s for s in self._sleepers if s.deadline <= target]
            if not due:
                break
            sleeper = min(due, key=lambda s: s.deadline)
            self._sleepers.remove(sleeper)
            self.current = max(self.current, sleeper.deadline)
            if not sleeper.future.done():
                sleeper.future.set_result(None)
            await settle()
        self.current = target
        await settle()


def measurement(
    timestamp: datetime,
    origin: str = "Alpha",
    destination: str = "Beta",
    duration: int | None = 600,
    distance: int | None = 5000,
    status: str = "OK",
    mode: str = "driving",
) -> Measurement:
    """Build a measurement with sensible defaults."""
    return Measurement(
        timestamp=timestamp,
        duration_seconds=duration,
        distance_meters=distance,
        status=status,
        origin=origin,
        destination=destination,
        mode=mode,
    )
