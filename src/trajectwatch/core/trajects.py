"""Validation and normalization of traject registrations.

Rules are applied in order and the first failure wins:

1. origin and destination must be non-empty after trimming and
   location normalization;
2. a requested id is sanitized and must not collide with an existing one;
3. a requested mode must be a known travel mode;
4. intervalMinutes falls back to the process default when invalid;
5. a requested logFile must be a plain file name ending in .csv, and no
   two trajects may share a log file.
"""

import math
import re
import uuid
from collections.abc import Collection, Mapping
from typing import Any

from trajectwatch.core.exceptions import DuplicateIdError, ValidationError
from trajectwatch.core.models import Traject, TrajectDefaults, TravelMode

_ID_INVALID_RUN = re.compile(r"[^A-Za-z0-9_-]+")
_LOG_FILE_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*\.csv$")
_COORDINATE_TEXT = re.compile(
    r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$"
)

_LAT_KEYS = ("lat", "latitude")
_LNG_KEYS = ("lng", "lon", "long", "longitude")


def _format_coordinate(value: Any, label: str) -> str:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be finite")
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _coordinate_pair(lat: Any, lng: Any) -> str:
    return f"{_format_coordinate(lat, 'latitude')},{_format_coordinate(lng, 'longitude')}"


def _first_key(value: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in value:
            return value[key]
    return None


def normalize_location(value: Any) -> str:
    """Normalize a location to a free-text address or a "lat,lng" string.

    Accepts a string, a two-element [lat, lng] sequence or a {lat, lng}
    mapping. Returns an empty string for missing input so the caller can
    report which field is absent.

    Raises:
        ValidationError: If a coordinate is not a finite number or the
            value has an unsupported shape.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        text = value.strip()
        match = _COORDINATE_TEXT.match(text)
        if match:
            return _coordinate_pair(match.group(1), match.group(2))
        return text
    if isinstance(value, Mapping):
        lat = _first_key(value, _LAT_KEYS)
        lng = _first_key(value, _LNG_KEYS)
        if lat is None or lng is None:
            raise ValidationError("location object needs lat and lng")
        return _coordinate_pair(lat, lng)
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValidationError("location pair needs exactly two coordinates")
        return _coordinate_pair(value[0], value[1])
    raise ValidationError(f"unsupported location type: {type(value).__name__}")


def sanitize_id(value: Any) -> str:
    """Reduce a requested id to the URL-safe alphabet [A-Za-z0-9_-]."""
    return _ID_INVALID_RUN.sub("-", str(value).strip()).strip("-")


def coerce_interval(value: Any, default: float) -> float:
    """Coerce an interval to a positive finite number of minutes."""
    if value is None or isinstance(value, bool):
        return default
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(minutes) or minutes <= 0:
        return default
    return minutes


def _new_id(existing: Collection[str]) -> str:
    while True:
        candidate = uuid.uuid4().hex[:8]
        if candidate not in existing:
            return candidate


def resolve_traject(
    spec: Mapping[str, Any],
    existing_ids: Collection[str],
    defaults: TrajectDefaults,
    existing_log_files: Collection[str] = (),
) -> Traject:
    """Resolve a partial registration into a complete traject.

    Args:
        spec: Registration fields (origin, destination, and optionally id,
            name, mode, intervalMinutes, logFile).
        existing_ids: Ids already present in the store.
        defaults: Process-wide mode and interval defaults.
        existing_log_files: Log files already claimed by stored trajects.

    Returns:
        The fully resolved Traject.

    Raises:
        ValidationError: If a field is missing or invalid.
        DuplicateIdError: If the requested id is already registered.
    """
    origin = normalize_location(spec.get("origin"))
    if not origin:
        raise ValidationError("origin is required")
    destination = normalize_location(spec.get("destination"))
    if not destination:
        raise ValidationError("destination is required")

    requested_id = spec.get("id")
    if requested_id is not None and str(requested_id).strip():
        traject_id = sanitize_id(requested_id)
        if not traject_id:
            raise ValidationError(f"id has no usable characters: {requested_id!r}")
        if traject_id in existing_ids:
            raise DuplicateIdError(traject_id)
    else:
        traject_id = _new_id(existing_ids)

    raw_mode = spec.get("mode")
    if raw_mode is None or not str(raw_mode).strip():
        mode = defaults.mode
    else:
        try:
            mode = TravelMode(str(raw_mode).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in TravelMode)
            raise ValidationError(
                f"mode must be one of {allowed}, got {raw_mode!r}"
            ) from None

    interval = coerce_interval(spec.get("intervalMinutes"), defaults.interval_minutes)

    raw_log_file = spec.get("logFile")
    if raw_log_file is None or not str(raw_log_file).strip():
        log_file = f"{traject_id}.csv"
    else:
        log_file = str(raw_log_file).strip()
        if not _LOG_FILE_PATTERN.match(log_file):
            raise ValidationError(
                f"logFile must be a plain .csv file name: {raw_log_file!r}"
            )
    if log_file in existing_log_files:
        raise ValidationError(f"logFile already used by another traject: {log_file!r}")

    name = str(spec.get("name") or "").strip() or f"{origin} -> {destination}"

    return Traject(
        id=traject_id,
        name=name,
        origin=origin,
        destination=destination,
        mode=mode,
        interval_minutes=interval,
        log_file=log_file,
    )
