"""CSV file storage adapter for measurement logs.

One file per traject under a data directory. Each file starts with the
header line and grows by one record per append; records are never
rewritten or deleted.
"""

import asyncio
import logging
import os
from pathlib import Path

from trajectwatch.core.encoding.quoted_csv import (
    HEADER_LINE,
    CsvFormatError,
    decode_measurements,
    encode_measurement,
)
from trajectwatch.core.exceptions import StorageError
from trajectwatch.core.models import Measurement

logger = logging.getLogger(__name__)


def _create_with_header(path: Path) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("x", encoding="utf-8", newline="") as handle:
            handle.write(HEADER_LINE)
    except FileExistsError:
        if path.stat().st_size > 0:
            return False
        # Left empty by a crash between create and header write.
        with path.open("a", encoding="utf-8", newline="") as handle:
            handle.write(HEADER_LINE)
    return True


def _append_line(path: Path, line: str) -> None:
    data = line.encode("utf-8")
    with path.open("ab+") as handle:
        if handle.seek(0, os.SEEK_END) > 0:
            handle.seek(-1, os.SEEK_END)
            if handle.read(1) != b"\n":
                # Terminate a torn record so the new one starts on its own line.
                data = b"\n" + data
        handle.write(data)


def _read_text(path: Path) -> str | None:
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            return handle.read()
    except FileNotFoundError:
        return None


class CsvMeasurementLog:
    """CSV implementation of MeasurementLogPort.

    Appends to the same file are serialized by a per-file lock, so every
    record is a single write call and concurrent writers (forward and
    reverse attempts, overlapping ticks) never interleave partial lines.
    File I/O runs in worker threads.

    Args:
        data_dir: Directory holding the log files.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._locks: dict[str, asyncio.Lock] = {}

    def path_for(self, log_file: str) -> Path:
        """Resolve a log identifier to its file inside the data directory."""
        return self._data_dir / Path(log_file).name

    def _lock_for(self, log_file: str) -> asyncio.Lock:
        lock = self._locks.get(log_file)
        if lock is None:
            lock = self._locks[log_file] = asyncio.Lock()
        return lock

    async def ensure(self, log_file: str) -> None:
        """Create the log with its header if it does not exist yet."""
        path = self.path_for(log_file)
        async with self._lock_for(log_file):
            try:
                created = await asyncio.to_thread(_create_with_header, path)
            except OSError as exc:
                raise StorageError(f"cannot create {path}: {exc}") from exc
        if created:
            logger.info("Created measurement log %s", path, extra={"log_file": log_file})

    async def append(self, log_file: str, measurement: Measurement) -> None:
        """Append one measurement, creating the log first if needed."""
        path = self.path_for(log_file)
        line = encode_measurement(measurement)
        async with self._lock_for(log_file):
            try:
                await asyncio.to_thread(_create_with_header, path)
                await asyncio.to_thread(_append_line, path, line)
            except OSError as exc:
                raise StorageError(f"cannot append to {path}: {exc}") from exc

    async def read_all(self, log_file: str) -> list[Measurement]:
        """Read all measurements in append order; [] if missing or malformed."""
        path = self.path_for(log_file)
        try:
            text = await asyncio.to_thread(_read_text, path)
        except (OSError, UnicodeDecodeError):
            logger.exception("Cannot read measurement log %s", path)
            return []
        if text is None:
            return []
        try:
            return decode_measurements(text)
        except CsvFormatError as exc:
            logger.warning("Ignoring malformed measurement log %s: %s", path, exc)
            return []
