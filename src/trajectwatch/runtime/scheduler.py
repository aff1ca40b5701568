"""Per-traject periodic polling.

Each registered traject gets one poller task. Entering the running state
issues one forward and one reverse measurement immediately, then a timer
issues one attempt per direction every interval. Attempts are independent
tasks: they may finish out of order and may overlap the next tick.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from trajectwatch.core.exceptions import ProviderError, StorageError
from trajectwatch.core.models import (
    Direction,
    Measurement,
    Snapshot,
    SnapshotBook,
    Traject,
)
from trajectwatch.core.ports import MeasurementLogPort, RouteProviderPort

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PollerHandle:
    """Active timer for one traject; owns the ability to cancel it."""

    def __init__(self, traject: Traject, task: asyncio.Task[None]) -> None:
        self.traject = traject
        self._task = task

    @property
    def running(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait_cancelled(self) -> None:
        """Wait for the timer task to finish after cancel()."""
        await asyncio.gather(self._task, return_exceptions=True)


class TrajectScheduler:
    """Runs one independent poller per traject.

    The scheduler owns its last-known snapshots, so separate instances
    never share state. Time is injected: `now` stamps measurements and
    `sleep` drives the timer, which lets tests advance a simulated clock.

    Args:
        provider: Route provider queried for every attempt.
        log: Measurement log that receives every attempt's record.
        snapshots: Snapshot map to update (a fresh one by default).
        now: Clock returning aware UTC datetimes.
        sleep: Coroutine function sleeping for a number of seconds.
    """

    def __init__(
        self,
        provider: RouteProviderPort,
        log: MeasurementLogPort,
        *,
        snapshots: SnapshotBook | None = None,
        now: Clock = utc_now,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._log = log
        self._snapshots = snapshots or SnapshotBook()
        self._now = now
        self._sleep = sleep
        self._pollers: dict[str, PollerHandle] = {}
        self._inflight: set[asyncio.Task[Measurement]] = set()

    @property
    def snapshots(self) -> SnapshotBook:
        return self._snapshots

    def snapshot(self, traject_id: str) -> Snapshot:
        """Return the last-known measurements for a traject."""
        return self._snapshots.get(traject_id)

    def running(self) -> list[str]:
        """Return the ids of trajects with an active poller."""
        return [tid for tid, handle in self._pollers.items() if handle.running]

    def handle(self, traject_id: str) -> PollerHandle | None:
        return self._pollers.get(traject_id)

    def start(self, traject: Traject) -> PollerHandle:
        """Start polling a traject; a no-op if it is already running.

        The first forward and reverse attempts are spawned before this
        returns. Must be called from within the running event loop.
        """
        existing = self._pollers.get(traject.id)
        if existing is not None and existing.running:
            return existing

        self._spawn_attempts(traject)
        task = asyncio.create_task(self._run(traject), name=f"poller:{traject.id}")
        handle = PollerHandle(traject, task)
        self._pollers[traject.id] = handle
        logger.info(
            "Polling traject %s every %s min",
            traject.id,
            traject.interval_minutes,
            extra={"traject_id": traject.id},
        )
        return handle

    async def _run(self, traject: Traject) -> None:
        while True:
            await self._sleep(traject.interval_seconds)
            self._spawn_attempts(traject)

    def _spawn_attempts(self, traject: Traject) -> None:
        for direction in (Direction.FORWARD, Direction.REVERSE):
            task = asyncio.create_task(
                self.measure(traject, direction),
                name=f"measure:{traject.id}:{direction.value}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def measure(self, traject: Traject, direction: Direction) -> Measurement:
        """Run one measurement attempt; never raises.

        Any provider failure yields an ERROR record. The snapshot is
        overwritten and the record appended whatever the outcome; a failed
        append is logged and dropped.
        """
        origin, destination = traject.endpoints(direction)
        context = {"traject_id": traject.id, "direction": direction.value}
        try:
            result = await self._provider.route(origin, destination, traject.mode)
            measurement = Measurement.from_result(
                result,
                timestamp=self._now(),
                origin=origin,
                destination=destination,
                mode=traject.mode,
            )
        except ProviderError as exc:
            logger.warning(
                "Route query failed for %s (%s): %s",
                traject.id,
                direction.value,
                exc,
                extra=context,
            )
            measurement = self._failed(traject, origin, destination)
        except Exception:
            logger.exception(
                "Unexpected error querying %s (%s)",
                traject.id,
                direction.value,
                extra=context,
            )
            measurement = self._failed(traject, origin, destination)

        self._snapshots.record(traject.id, direction, measurement)
        try:
            await self._log.append(traject.log_file, measurement)
        except StorageError:
            logger.exception("Dropping measurement for %s", traject.id, extra=context)
        except Exception:
            logger.exception(
                "Unexpected error appending measurement for %s",
                traject.id,
                extra=context,
            )
        return measurement

    def _failed(self, traject: Traject, origin: str, destination: str) -> Measurement:
        return Measurement.failed(
            timestamp=self._now(),
            origin=origin,
            destination=destination,
            mode=traject.mode,
        )

    async def wait_idle(self) -> None:
        """Wait until every in-flight attempt has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel all pollers and in-flight attempts (process shutdown)."""
        handles = list(self._pollers.values())
        for handle in handles:
            handle.cancel()
        for task in list(self._inflight):
            task.cancel()
        for handle in handles:
            await handle.wait_cancelled()
        await asyncio.gather(*list(self._inflight), return_exceptions=True)
        self._pollers.clear()
