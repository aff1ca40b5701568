"""trajectwatch - periodic travel-time polling with an append-only history."""

from trajectwatch.adapters.storage import (
    CsvMeasurementLog,
    InMemoryMeasurementLog,
    InMemoryTrajectStore,
    JsonFileTrajectStore,
    SQLiteTrajectStore,
)
from trajectwatch.core.exceptions import (
    DuplicateIdError,
    ProviderError,
    StorageError,
    TrajectNotFoundError,
    ValidationError,
)
from trajectwatch.core.models import (
    Direction,
    Measurement,
    RouteResult,
    Snapshot,
    Traject,
    TrajectDefaults,
    TravelMode,
)
from trajectwatch.runtime.scheduler import TrajectScheduler
from trajectwatch.service import TrajectService, build_service

__all__ = [
    "CsvMeasurementLog",
    "Direction",
    "DuplicateIdError",
    "InMemoryMeasurementLog",
    "InMemoryTrajectStore",
    "JsonFileTrajectStore",
    "Measurement",
    "ProviderError",
    "RouteResult",
    "SQLiteTrajectStore",
    "Snapshot",
    "StorageError",
    "Traject",
    "TrajectDefaults",
    "TrajectNotFoundError",
    "TrajectScheduler",
    "TrajectService",
    "TravelMode",
    "ValidationError",
    "build_service",
]
