"""BDD step definitions for traject polling features."""

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from tests.helpers import FakeClock, FakeRouteProvider
from trajectwatch.adapters.storage.in_memory import (
    InMemoryMeasurementLog,
    InMemoryTrajectStore,
)
from trajectwatch.core.exceptions import ProviderError
from trajectwatch.core.models import Measurement, RouteResult, Traject
from trajectwatch.runtime.scheduler import TrajectScheduler
from trajectwatch.service import TrajectService


@dataclass
class PollingScenarioContext:
    """Shared state across the steps of one scenario.

    Steps are synchronous; every coroutine runs on the context's own loop
    so pollers survive from one step to the next.
    """

    loop: asyncio.AbstractEventLoop = field(default_factory=asyncio.new_event_loop)
    clock: FakeClock = field(default_factory=FakeClock)
    provider: FakeRouteProvider = field(default_factory=FakeRouteProvider)
    log: InMemoryMeasurementLog = field(default_factory=InMemoryMeasurementLog)
    store: InMemoryTrajectStore = field(default_factory=InMemoryTrajectStore)
    trajects: list[Traject] = field(default_factory=list)
    service: TrajectService | None = None

    def run(self, coro: Any) -> Any:
        """Run a coroutine on the scenario loop."""
        return self.loop.run_until_complete(coro)

    def get_service(self) -> TrajectService:
        if self.service is None:
            scheduler = TrajectScheduler(
                self.provider, self.log, now=self.clock.now, sleep=self.clock.sleep
            )
            self.service = TrajectService(
                self.store, self.log, self.provider, scheduler=scheduler
            )
        return self.service

    def records(self, origin: str, destination: str) -> list[Measurement]:
        traject = self.find(origin, destination)
        return [
            r
            for r in self.run(self.log.read_all(traject.log_file))
            if (r.origin, r.destination) == (origin, destination)
        ]

    def find(self, origin: str, destination: str) -> Traject:
        for traject in self.trajects:
            if {traject.origin, traject.destination} == {origin, destination}:
                return traject
        raise AssertionError(f"no traject between {origin} and {destination}")


@pytest.fixture
def ctx() -> Iterator[PollingScenarioContext]:
    """Fresh scenario context for each test; stops pollers afterwards."""
    context = PollingScenarioContext()
    yield context
    if context.service is not None:
        context.run(context.service.stop())
    context.loop.close()


# === Background Steps ===
@given(parsers.parse('a simulated clock at "{moment}"'))
def step_clock(ctx: PollingScenarioContext, moment: str) -> None:
    ctx.clock.current = datetime.fromisoformat(moment)


# === Given Steps ===
@given(
    parsers.parse(
        'a traject from "{origin}" to "{destination}" polled every {minutes:d} minute'
    )
)
@given(
    parsers.parse(
        'a traject from "{origin}" to "{destination}" polled every {minutes:d} minutes'
    )
)
def step_traject(
    ctx: PollingScenarioContext, origin: str, destination: str, minutes: int
) -> None:
    spec = {"origin": origin, "destination": destination, "intervalMinutes": minutes}
    ctx.trajects.append(ctx.run(ctx.store.register(spec)))


@given(
    parsers.parse(
        'the route from "{origin}" to "{destination}" takes {seconds:d} seconds '
        "over {meters:d} meters"
    )
)
def step_route_ok(
    ctx: PollingScenarioContext,
    origin: str,
    destination: str,
    seconds: int,
    meters: int,
) -> None:
    ctx.provider.responses[(origin, destination)] = RouteResult(
        seconds, meters, element_status="OK", api_status="OK"
    )


@given(parsers.parse('the route from "{origin}" to "{destination}" fails'))
def step_route_fails(ctx: PollingScenarioContext, origin: str, destination: str) -> None:
    ctx.provider.responses[(origin, destination)] = ProviderError("HTTP 503", 503)


# === When Steps ===
@when("polling starts")
def step_polling_starts(ctx: PollingScenarioContext) -> None:
    service = ctx.get_service()
    ctx.run(service.start())
    ctx.run(service.scheduler.wait_idle())


@when(parsers.parse("{seconds:d} seconds pass"))
def step_time_passes(ctx: PollingScenarioContext, seconds: int) -> None:
    service = ctx.get_service()
    ctx.run(ctx.clock.advance(seconds))
    ctx.run(service.scheduler.wait_idle())


@when(parsers.parse('a traject from "{origin}" to "{destination}" is registered'))
def step_register(ctx: PollingScenarioContext, origin: str, destination: str) -> None:
    service = ctx.get_service()
    traject = ctx.run(service.register({"origin": origin, "destination": destination}))
    ctx.trajects.append(traject)
    ctx.run(service.scheduler.wait_idle())


# === Then Steps ===
@then(
    parsers.parse("the log holds {count:d} forward records with duration {seconds:d}")
)
def step_forward_records(ctx: PollingScenarioContext, count: int, seconds: int) -> None:
    traject = ctx.trajects[0]
    records = ctx.records(traject.origin, traject.destination)
    assert [r.duration_seconds for r in records] == [seconds] * count


@then(
    parsers.parse(
        'the log holds {count:d} reverse records with status "{status}" '
        "and no duration"
    )
)
def step_reverse_errors(ctx: PollingScenarioContext, count: int, status: str) -> None:
    traject = ctx.trajects[0]
    records = ctx.records(traject.destination, traject.origin)
    assert [r.status for r in records] == [status] * count
    assert all(r.duration_seconds is None for r in records)


@then(parsers.parse('the last known reverse measurement has status "{status}"'))
def step_last_known_reverse(ctx: PollingScenarioContext, status: str) -> None:
    snapshot = ctx.get_service().scheduler.snapshot(ctx.trajects[0].id)
    assert snapshot.reverse is not None
    assert snapshot.reverse.status == status


@then(
    parsers.parse('the log of "{origin}" to "{destination}" holds {count:d} records')
)
def step_log_size(
    ctx: PollingScenarioContext, origin: str, destination: str, count: int
) -> None:
    traject = ctx.find(origin, destination)
    assert len(ctx.run(ctx.log.read_all(traject.log_file))) == count


@then(parsers.parse('the traject list contains "{name}"'))
def step_list_contains(ctx: PollingScenarioContext, name: str) -> None:
    trajects = ctx.run(ctx.get_service().list_trajects())
    assert name in [t.name for t in trajects]
