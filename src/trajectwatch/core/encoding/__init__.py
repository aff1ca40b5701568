"""Serialization formats for measurement logs."""

from trajectwatch.core.encoding.quoted_csv import (
    HEADER_FIELDS,
    HEADER_LINE,
    CsvFormatError,
    decode_measurements,
    encode_measurement,
    escape_field,
    split_rows,
)

__all__ = [
    "HEADER_FIELDS",
    "HEADER_LINE",
    "CsvFormatError",
    "decode_measurements",
    "encode_measurement",
    "escape_field",
    "split_rows",
]
