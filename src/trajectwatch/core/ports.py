"""Port interfaces for storage and route provider adapters.

These protocols define the contracts that adapters must implement.
The core domain and the scheduler depend only on these interfaces,
not on concrete implementations.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from trajectwatch.core.models import Measurement, RouteResult, Traject


@runtime_checkable
class TrajectStorePort(Protocol):
    """Port for the durable registry of monitored trajects.

    Examples: InMemoryTrajectStore, JsonFileTrajectStore, SQLiteTrajectStore.
    """

    async def register(self, spec: Mapping[str, Any]) -> Traject:
        """Validate and persist a new traject.

        The traject must be durable and visible to list() before this
        returns.

        Raises:
            ValidationError: If the registration is invalid.
            DuplicateIdError: If the requested id is taken.
        """
        ...

    async def list(self) -> list[Traject]:
        """Return all trajects in registration order.

        Returns an empty list when the backing data is unreadable.
        """
        ...


@runtime_checkable
class MeasurementLogPort(Protocol):
    """Port for append-only measurement logs, one per traject.

    Examples: CsvMeasurementLog, InMemoryMeasurementLog.
    """

    async def ensure(self, log_file: str) -> None:
        """Create the log with its header if it does not exist yet."""
        ...

    async def append(self, log_file: str, measurement: Measurement) -> None:
        """Append one measurement.

        Raises:
            StorageError: If the record could not be written.
        """
        ...

    async def read_all(self, log_file: str) -> list[Measurement]:
        """Read every measurement in append order.

        Returns an empty list when the log is missing or malformed.
        """
        ...


@runtime_checkable
class RouteProviderPort(Protocol):
    """Port for the external routing API.

    Examples: DistanceMatrixProvider, RoutesProvider.
    """

    async def route(self, origin: str, destination: str, mode: str) -> RouteResult:
        """Query travel duration and distance between two locations.

        Raises:
            ProviderError: On transport errors, non-2xx responses or
                malformed payloads.
        """
        ...
