"""Core domain models for traject polling."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class TravelMode(StrEnum):
    """Travel modes understood by the route providers."""

    DRIVING = "driving"
    WALKING = "walking"
    BICYCLING = "bicycling"
    TRANSIT = "transit"


class Direction(StrEnum):
    """Which way a measurement was taken along a traject."""

    FORWARD = "forward"
    REVERSE = "reverse"


STATUS_ERROR = "ERROR"
STATUS_UNKNOWN = "UNKNOWN"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 with milliseconds and a Z suffix.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the text is not an ISO-8601 timestamp.
    """
    value = datetime.fromisoformat(text.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TrajectDefaults:
    """Process-wide defaults applied while resolving a traject.

    Attributes:
        mode: Travel mode used when a registration does not name one.
        interval_minutes: Polling period used when none (or an invalid one)
            is supplied.
    """

    mode: TravelMode = TravelMode.DRIVING
    interval_minutes: float = 5.0


@dataclass(frozen=True)
class Traject:
    """A monitored route between two locations.

    Attributes:
        id: Stable, URL-safe identifier.
        name: Display label.
        origin: Free-text address or normalized "lat,lng" pair.
        destination: Free-text address or normalized "lat,lng" pair.
        mode: Travel mode used for every measurement.
        interval_minutes: Polling period in minutes.
        log_file: Identifier of the traject's measurement log.
    """

    id: str
    name: str
    origin: str
    destination: str
    mode: TravelMode
    interval_minutes: float
    log_file: str

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    def endpoints(self, direction: Direction) -> tuple[str, str]:
        """Return the (origin, destination) pair queried for a direction."""
        if direction is Direction.REVERSE:
            return self.destination, self.origin
        return self.origin, self.destination

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted (and public) document layout."""
        interval: float | int = self.interval_minutes
        if float(interval).is_integer():
            interval = int(interval)
        return {
            "id": self.id,
            "name": self.name,
            "origin": self.origin,
            "destination": self.destination,
            "mode": self.mode.value,
            "intervalMinutes": interval,
            "logFile": self.log_file,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Traject":
        """Rebuild a traject from its persisted document.

        Raises:
            KeyError: If a field is missing.
            ValueError: If the mode or interval is not valid.
        """
        interval = float(doc["intervalMinutes"])
        if not interval > 0:
            raise ValueError(f"invalid intervalMinutes: {doc['intervalMinutes']!r}")
        return cls(
            id=str(doc["id"]),
            name=str(doc["name"]),
            origin=str(doc["origin"]),
            destination=str(doc["destination"]),
            mode=TravelMode(doc["mode"]),
            interval_minutes=interval,
            log_file=str(doc["logFile"]),
        )


@dataclass(frozen=True)
class RouteResult:
    """Outcome of one successful route provider call.

    Attributes:
        duration_seconds: Travel time, if the provider returned one.
        distance_meters: Travel distance, if the provider returned one.
        element_status: Status of the individual route element.
        api_status: Overall status of the API response.
    """

    duration_seconds: float | None
    distance_meters: float | None
    element_status: str | None = None
    api_status: str | None = None


@dataclass(frozen=True)
class Measurement:
    """One timestamped routing query outcome, as stored in a measurement log.

    Attributes:
        timestamp: Instant the query completed (aware, UTC).
        duration_seconds: Travel time, None when the query failed.
        distance_meters: Travel distance, None when the query failed.
        status: Provider status code, or ERROR on failure.
        origin: Origin used for this query.
        destination: Destination used for this query.
        mode: Travel mode used for this query.
    """

    timestamp: datetime
    duration_seconds: int | None
    distance_meters: int | None
    status: str
    origin: str
    destination: str
    mode: str

    @classmethod
    def from_result(
        cls,
        result: RouteResult,
        *,
        timestamp: datetime,
        origin: str,
        destination: str,
        mode: str,
    ) -> "Measurement":
        """Build a measurement from a provider result.

        The status falls back from the element status to the overall API
        status to UNKNOWN.
        """
        return cls(
            timestamp=timestamp,
            duration_seconds=coerce_metric(result.duration_seconds),
            distance_meters=coerce_metric(result.distance_meters),
            status=result.element_status or result.api_status or STATUS_UNKNOWN,
            origin=origin,
            destination=destination,
            mode=str(mode),
        )

    @classmethod
    def failed(
        cls, *, timestamp: datetime, origin: str, destination: str, mode: str
    ) -> "Measurement":
        """Build the record written for a failed query."""
        return cls(
            timestamp=timestamp,
            duration_seconds=None,
            distance_meters=None,
            status=STATUS_ERROR,
            origin=origin,
            destination=destination,
            mode=str(mode),
        )

    @property
    def ok(self) -> bool:
        return self.status != STATUS_ERROR and self.duration_seconds is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the measurement log column names."""
        return {
            "timestamp_iso": format_timestamp(self.timestamp),
            "duration_seconds": self.duration_seconds,
            "distance_meters": self.distance_meters,
            "status": self.status,
            "origin": self.origin,
            "destination": self.destination,
            "mode": self.mode,
        }


def coerce_metric(value: Any) -> int | None:
    """Coerce a provider metric to a non-negative integer or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")) or number < 0:
        return None
    return int(round(number))


@dataclass
class Snapshot:
    """Most recent measurement per direction for one traject."""

    forward: Measurement | None = None
    reverse: Measurement | None = None

    def get(self, direction: Direction) -> Measurement | None:
        return self.forward if direction is Direction.FORWARD else self.reverse

    def to_dict(self) -> dict[str, Any]:
        return {
            "forward": self.forward.to_dict() if self.forward else None,
            "reverse": self.reverse.to_dict() if self.reverse else None,
        }


@dataclass
class SnapshotBook:
    """Owned map of traject id to its last-known snapshot.

    Not durable; rebuilt as measurements complete.
    """

    _snapshots: dict[str, Snapshot] = field(default_factory=dict)

    def record(
        self, traject_id: str, direction: Direction, measurement: Measurement
    ) -> None:
        """Overwrite the snapshot for one traject and direction."""
        snapshot = self._snapshots.setdefault(traject_id, Snapshot())
        if direction is Direction.FORWARD:
            snapshot.forward = measurement
        else:
            snapshot.reverse = measurement

    def get(self, traject_id: str) -> Snapshot:
        """Return a copy of the snapshot (empty if nothing recorded yet)."""
        current = self._snapshots.get(traject_id)
        if current is None:
            return Snapshot()
        return Snapshot(forward=current.forward, reverse=current.reverse)
