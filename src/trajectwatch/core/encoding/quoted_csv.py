"""Quoted-CSV encoder and decoder for measurement logs.

Layout: a header line naming the seven columns, then one record per line.
Fields containing a comma, double quote, CR or LF are wrapped in double
quotes with embedded quotes doubled. Missing numbers are empty fields.
"""

import logging
from collections.abc import Iterable, Sequence

from trajectwatch.core.models import (
    Measurement,
    coerce_metric,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "timestamp_iso",
    "duration_seconds",
    "distance_meters",
    "status",
    "origin",
    "destination",
    "mode",
)
HEADER_LINE = ",".join(HEADER_FIELDS) + "\n"

_NEEDS_QUOTING = (",", '"', "\n", "\r")


class CsvFormatError(ValueError):
    """The text is not a measurement log (missing or unknown header)."""


def escape_field(value: object) -> str:
    """Encode one field value, quoting it when required.

    None encodes as an empty field.
    """
    if value is None:
        return ""
    text = str(value)
    if any(marker in text for marker in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def encode_row(values: Iterable[object]) -> str:
    """Encode one record as a newline-terminated line."""
    return ",".join(escape_field(v) for v in values) + "\n"


def encode_measurement(measurement: Measurement) -> str:
    """Encode a measurement in header column order."""
    return encode_row(
        (
            format_timestamp(measurement.timestamp),
            measurement.duration_seconds,
            measurement.distance_meters,
            measurement.status,
            measurement.origin,
            measurement.destination,
            measurement.mode,
        )
    )


def split_rows(text: str) -> list[list[str]]:
    """Scan quoted-CSV text into rows of raw field strings.

    Quoted fields may contain commas, doubled quotes and line breaks.
    Both LF and CRLF end a record; blank lines are skipped. A trailing
    record with an unterminated quote (an interrupted write) is dropped.

    Args:
        text: Complete file contents.

    Returns:
        List of rows, each a list of unescaped field values.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    started = False
    i = 0
    n = len(text)

    def end_row() -> None:
        nonlocal row, field, started
        if started:
            row.append("".join(field))
            rows.append(row)
        row, field, started = [], [], False

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    field.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(ch)
            i += 1
            continue

        if ch == '"':
            in_quotes = True
            started = True
        elif ch == ",":
            row.append("".join(field))
            field = []
            started = True
        elif ch == "\n":
            end_row()
        elif ch == "\r" and i + 1 < n and text[i + 1] == "\n":
            end_row()
            i += 1
        else:
            field.append(ch)
            started = True
        i += 1

    if in_quotes:
        logger.warning("Dropping truncated trailing record in measurement log")
    else:
        end_row()
    return rows


def _parse_metric(text: str) -> int | None:
    if text == "":
        return None
    try:
        return int(text)
    except ValueError:
        return coerce_metric(text)


def _column_index(header: Sequence[str]) -> dict[str, int]:
    index = {name.strip(): pos for pos, name in enumerate(header)}
    missing = [name for name in HEADER_FIELDS if name not in index]
    if missing:
        raise CsvFormatError(f"measurement log header lacks {', '.join(missing)}")
    return index


def decode_measurements(text: str) -> list[Measurement]:
    """Decode a whole measurement log, preserving record order.

    Columns are located by header name. Records that cannot be decoded
    (wrong field count, bad timestamp) are skipped with a warning.

    Raises:
        CsvFormatError: If the text has no recognisable header.
    """
    rows = split_rows(text)
    if not rows:
        raise CsvFormatError("measurement log is empty")
    index = _column_index(rows[0])
    width = len(rows[0])

    measurements: list[Measurement] = []
    for line_no, row in enumerate(rows[1:], start=2):
        if len(row) != width:
            logger.warning(
                "Skipping record %d with %d fields, expected %d",
                line_no,
                len(row),
                width,
            )
            continue
        try:
            timestamp = parse_timestamp(row[index["timestamp_iso"]])
        except ValueError:
            logger.warning("Skipping record %d with bad timestamp", line_no)
            continue
        measurements.append(
            Measurement(
                timestamp=timestamp,
                duration_seconds=_parse_metric(row[index["duration_seconds"]]),
                distance_meters=_parse_metric(row[index["distance_meters"]]),
                status=row[index["status"]],
                origin=row[index["origin"]],
                destination=row[index["destination"]],
                mode=row[index["mode"]],
            )
        )
    return measurements
