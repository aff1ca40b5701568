"""In-memory storage adapters for trajects and measurements."""

from trajectwatch.adapters.storage.document_base import DocumentTrajectStore
from trajectwatch.core.models import Measurement, Traject, TrajectDefaults


class InMemoryTrajectStore(DocumentTrajectStore):
    """In-memory implementation of TrajectStorePort.

    Holds the traject collection in a list. Suitable for testing and
    ephemeral runs where persistence is not required.
    """

    def __init__(self, defaults: TrajectDefaults | None = None) -> None:
        super().__init__(defaults)
        self._trajects: list[Traject] = []

    async def _load(self) -> list[Traject]:
        return list(self._trajects)

    async def _save(self, trajects: list[Traject]) -> None:
        self._trajects = list(trajects)


class InMemoryMeasurementLog:
    """In-memory implementation of MeasurementLogPort.

    Stores measurements per log identifier in append order.
    """

    def __init__(self) -> None:
        self._logs: dict[str, list[Measurement]] = {}

    async def ensure(self, log_file: str) -> None:
        self._logs.setdefault(log_file, [])

    async def append(self, log_file: str, measurement: Measurement) -> None:
        """Append a measurement to the named log."""
        self._logs.setdefault(log_file, []).append(measurement)

    async def read_all(self, log_file: str) -> list[Measurement]:
        """Read all measurements of the named log in append order."""
        return list(self._logs.get(log_file, []))
