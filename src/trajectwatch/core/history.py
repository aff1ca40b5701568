"""History reconstruction for a traject's measurement log.

The reader returns records in literal append order. Callers that need
chronological order, a single direction or a single day use the helper
functions below.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any

from trajectwatch.core.models import Direction, Measurement, Traject, format_timestamp
from trajectwatch.core.ports import MeasurementLogPort


class HistoryReader:
    """Reads the full measurement history of a traject."""

    def __init__(self, log: MeasurementLogPort) -> None:
        self._log = log

    async def history_for(self, traject: Traject) -> list[Measurement]:
        """Return every record of the traject's log in append order."""
        return await self._log.read_all(traject.log_file)


def direction_of(traject: Traject, record: Measurement) -> Direction | None:
    """Classify a record as forward, reverse, or neither (None)."""
    pair = (record.origin, record.destination)
    if pair == (traject.origin, traject.destination):
        return Direction.FORWARD
    if pair == (traject.destination, traject.origin):
        return Direction.REVERSE
    return None


@dataclass
class DirectionalHistory:
    """Records split into forward and reverse series, append order kept."""

    forward: list[Measurement] = field(default_factory=list)
    reverse: list[Measurement] = field(default_factory=list)

    def series(self, direction: Direction) -> list[Measurement]:
        return self.forward if direction is Direction.FORWARD else self.reverse


def split_directions(
    traject: Traject, records: Iterable[Measurement]
) -> DirectionalHistory:
    """Split records by direction, dropping records that match neither."""
    history = DirectionalHistory()
    for record in records:
        direction = direction_of(traject, record)
        if direction is not None:
            history.series(direction).append(record)
    return history


def floor_to_minute(timestamp: datetime) -> datetime:
    return timestamp.replace(second=0, microsecond=0)


@dataclass(frozen=True)
class AlignedRow:
    """One minute of side-by-side forward and reverse measurements.

    A direction without a record in that minute is None.
    """

    minute: datetime
    forward: Measurement | None
    reverse: Measurement | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "minute": format_timestamp(self.minute),
            "forward": _aligned_cell(self.forward),
            "reverse": _aligned_cell(self.reverse),
        }


def _aligned_cell(record: Measurement | None) -> dict[str, Any] | None:
    if record is None:
        return None
    cell = record.to_dict()
    cell["duration_minutes"] = minutes(record.duration_seconds)
    cell["distance_km"] = kilometres(record.distance_meters)
    return cell


def align_by_minute(
    traject: Traject, records: Iterable[Measurement]
) -> list[AlignedRow]:
    """Pair forward and reverse records whose timestamps share a minute.

    Pairing is best effort: the two directions are independent calls that
    may straddle a minute boundary. Within one minute and direction the
    last record in append order wins. Rows are sorted by minute.
    """
    cells: dict[datetime, dict[Direction, Measurement]] = {}
    for record in records:
        direction = direction_of(traject, record)
        if direction is None:
            continue
        cells.setdefault(floor_to_minute(record.timestamp), {})[direction] = record
    return [
        AlignedRow(
            minute=minute,
            forward=pair.get(Direction.FORWARD),
            reverse=pair.get(Direction.REVERSE),
        )
        for minute, pair in sorted(cells.items())
    ]


def filter_day(
    records: Iterable[Measurement], day: date, tz: tzinfo
) -> list[Measurement]:
    """Keep records whose timestamp falls on `day` in timezone `tz`."""
    return [r for r in records if r.timestamp.astimezone(tz).date() == day]


def latest(records: Sequence[Measurement], limit: int) -> list[Measurement]:
    """Return the last `limit` records, newest first."""
    if limit <= 0:
        return []
    return list(reversed(records[-limit:]))


def minutes(seconds: int | None) -> float | None:
    """Convert seconds to minutes rounded to one decimal."""
    if seconds is None:
        return None
    return round(seconds / 60, 1)


def kilometres(meters: int | None) -> float | None:
    """Convert meters to kilometres rounded to two decimals."""
    if meters is None:
        return None
    return round(meters / 1000, 2)
