"""Query façade over the traject store, scheduler and measurement logs.

This is the surface consumed by the HTTP adapter: read-only queries plus
registration, which persists a traject and starts its poller in one call.
"""

import logging
from collections.abc import Mapping
from datetime import date, timezone, tzinfo
from typing import Any

from trajectwatch.adapters.providers import DistanceMatrixProvider, RoutesProvider
from trajectwatch.adapters.storage import (
    CsvMeasurementLog,
    InMemoryTrajectStore,
    JsonFileTrajectStore,
    SQLiteTrajectStore,
)
from trajectwatch.config import Settings
from trajectwatch.core.exceptions import StorageError, TrajectNotFoundError
from trajectwatch.core.history import (
    AlignedRow,
    HistoryReader,
    align_by_minute,
    filter_day,
    latest,
    split_directions,
)
from trajectwatch.core.models import Direction, Measurement, Snapshot, Traject
from trajectwatch.core.ports import (
    MeasurementLogPort,
    RouteProviderPort,
    TrajectStorePort,
)
from trajectwatch.runtime.scheduler import TrajectScheduler

logger = logging.getLogger(__name__)


class TrajectService:
    """Registration and read access for monitored trajects.

    Args:
        store: Durable traject registry.
        log: Measurement log shared with the scheduler.
        provider: Route provider the scheduler queries.
        scheduler: Scheduler to drive (built from provider and log if omitted).
        tz: Timezone that defines calendar days for history filters.
        seed: Registration used at start() when the store is empty.
    """

    def __init__(
        self,
        store: TrajectStorePort,
        log: MeasurementLogPort,
        provider: RouteProviderPort,
        *,
        scheduler: TrajectScheduler | None = None,
        tz: tzinfo = timezone.utc,
        seed: Mapping[str, Any] | None = None,
    ) -> None:
        self.store = store
        self.log = log
        self.provider = provider
        self.scheduler = scheduler or TrajectScheduler(provider, log)
        self.tz = tz
        self._seed = seed
        self._reader = HistoryReader(log)

    async def start(self) -> None:
        """Seed the store if configured and empty, then poll every traject."""
        trajects = await self.store.list()
        if not trajects and self._seed:
            await self.store.register(self._seed)
            trajects = await self.store.list()
        for traject in trajects:
            await self._ensure_log(traject)
            self.scheduler.start(traject)

    async def stop(self) -> None:
        """Stop all pollers and release provider resources."""
        await self.scheduler.stop()
        aclose = getattr(self.provider, "aclose", None)
        if aclose is not None:
            await aclose()
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()

    async def _ensure_log(self, traject: Traject) -> None:
        try:
            await self.log.ensure(traject.log_file)
        except StorageError:
            logger.exception(
                "Cannot create log for %s", traject.id, extra={"traject_id": traject.id}
            )

    async def register(self, spec: Mapping[str, Any]) -> Traject:
        """Persist a new traject and start polling it.

        Polling has started (first attempts spawned) when this returns.

        Raises:
            ValidationError: If the registration is invalid.
            DuplicateIdError: If the requested id is taken.
            StorageError: If the store could not be written.
        """
        traject = await self.store.register(spec)
        await self._ensure_log(traject)
        self.scheduler.start(traject)
        return traject

    async def list_trajects(self) -> list[Traject]:
        return await self.store.list()

    async def resolve(self, traject_id: str | None = None) -> Traject:
        """Find a traject by id, or the first registered one if id is None.

        Raises:
            TrajectNotFoundError: If no traject matches.
        """
        trajects = await self.store.list()
        if traject_id is None:
            if not trajects:
                raise TrajectNotFoundError(None)
            return trajects[0]
        for traject in trajects:
            if traject.id == traject_id:
                return traject
        raise TrajectNotFoundError(traject_id)

    async def last_known(
        self, traject_id: str | None = None
    ) -> tuple[Traject, Snapshot]:
        """Return a traject and its most recent forward/reverse measurements."""
        traject = await self.resolve(traject_id)
        return traject, self.scheduler.snapshot(traject.id)

    async def history(
        self,
        traject_id: str | None = None,
        *,
        direction: Direction | None = None,
        day: date | None = None,
        limit: int | None = None,
    ) -> tuple[Traject, list[Measurement]]:
        """Return a traject's history, optionally narrowed.

        Without filters, records come back in append order. `direction`
        keeps one series, `day` keeps one calendar day in the service
        timezone, and `limit` keeps the last N records, newest first.
        """
        traject = await self.resolve(traject_id)
        records = await self._reader.history_for(traject)
        if direction is not None:
            records = split_directions(traject, records).series(direction)
        if day is not None:
            records = filter_day(records, day, self.tz)
        if limit is not None:
            records = latest(records, limit)
        return traject, records

    async def aligned_history(
        self, traject_id: str | None = None, *, day: date | None = None
    ) -> tuple[Traject, list[AlignedRow]]:
        """Return forward and reverse records paired per minute."""
        traject = await self.resolve(traject_id)
        records = await self._reader.history_for(traject)
        if day is not None:
            records = filter_day(records, day, self.tz)
        return traject, align_by_minute(traject, records)


def build_store(settings: Settings) -> TrajectStorePort:
    if settings.STORE_BACKEND == "memory":
        return InMemoryTrajectStore(settings.defaults)
    if settings.STORE_BACKEND == "sqlite":
        return SQLiteTrajectStore(
            str(settings.data_path / settings.SQLITE_PATH), settings.defaults
        )
    return JsonFileTrajectStore(
        settings.data_path / settings.TRAJECTS_FILE, settings.defaults
    )


def build_provider(settings: Settings) -> RouteProviderPort:
    """Create the configured route provider.

    Raises:
        ValueError: If no API key is configured.
    """
    if settings.API_KEY is None:
        raise ValueError("TRAJECTWATCH_API_KEY is required")
    api_key = settings.API_KEY.get_secret_value()
    provider_cls = RoutesProvider if settings.PROVIDER == "routes" else DistanceMatrixProvider
    return provider_cls(
        api_key,
        prefer_traffic=settings.PREFER_TRAFFIC,
        timeout=settings.PROVIDER_TIMEOUT,
    )


def build_service(
    settings: Settings, provider: RouteProviderPort | None = None
) -> TrajectService:
    """Wire store, log, provider and scheduler from settings."""
    seed = None
    if settings.ORIGIN and settings.DESTINATION:
        seed = {"origin": settings.ORIGIN, "destination": settings.DESTINATION}
    return TrajectService(
        build_store(settings),
        CsvMeasurementLog(settings.data_path),
        provider or build_provider(settings),
        tz=settings.tz,
        seed=seed,
    )
