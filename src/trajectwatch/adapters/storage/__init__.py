"""Storage adapters implementing core ports."""

from trajectwatch.adapters.storage.csv_log import CsvMeasurementLog
from trajectwatch.adapters.storage.in_memory import (
    InMemoryMeasurementLog,
    InMemoryTrajectStore,
)
from trajectwatch.adapters.storage.json_file import JsonFileTrajectStore
from trajectwatch.adapters.storage.sqlite import SQLiteTrajectStore

__all__ = [
    "CsvMeasurementLog",
    "InMemoryMeasurementLog",
    "InMemoryTrajectStore",
    "JsonFileTrajectStore",
    "SQLiteTrajectStore",
]
