"""
firepush/encoding/wire.py

Converts plain JSON-like documents into the Firestore REST "Value" wire format,
a tree of single-key tagged objects such as {"stringValue": "x"}.

Two string sentinels are reinterpreted instead of stored verbatim:
  - "Timestamp"            => timestampValue holding the encode time
  - "GeoPoint(lat, lng)"   => geoPointValue with the parsed coordinates

A malformed GeoPoint raises FormatError, which fails only the document being encoded.
"""

from __future__ import annotations

import datetime
import math
import re
from typing import Any, Dict, Optional

from firepush.models.document import Document, DocumentValue

TIMESTAMP_SENTINEL = "Timestamp"
GEOPOINT_PREFIX = "GeoPoint("
GEOPOINT_SUFFIX = ")"

_COORDINATE_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?", re.ASCII)


class FormatError(ValueError):
    """Raised when a document value cannot be encoded to the wire format."""


def format_timestamp(now: datetime.datetime) -> str:
    """Render an aware datetime as ISO-8601 UTC with milliseconds and a 'Z' suffix."""
    utc = now.astimezone(datetime.timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _parse_coordinate(text: str) -> float:
    text = text.strip()
    # plain decimal or exponent form only; float() would also take "1_0", "inf" and "nan"
    if not _COORDINATE_RE.fullmatch(text):
        raise ValueError(f"not a decimal number {text!r}")
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"non-finite coordinate {text!r}")
    return number


def parse_geopoint(value: str) -> Dict[str, float]:
    """
    Parse a "GeoPoint(lat, lng)" sentinel.

    Raises:
        FormatError: If the interior does not hold exactly two numeric components.
    """
    interior = value[len(GEOPOINT_PREFIX) : -len(GEOPOINT_SUFFIX)]
    lat_text, sep, lng_text = interior.partition(",")
    try:
        if not sep:
            raise ValueError("missing comma")
        latitude = _parse_coordinate(lat_text)
        longitude = _parse_coordinate(lng_text)
    except ValueError as exc:
        raise FormatError(
            f"Invalid GeoPoint format: {value}. Expected: GeoPoint(latitude, longitude)"
        ) from exc
    return {"latitude": latitude, "longitude": longitude}


def _encode_string(value: str, now: datetime.datetime) -> Dict[str, Any]:
    if value == TIMESTAMP_SENTINEL:
        return {"timestampValue": format_timestamp(now)}
    if value.startswith(GEOPOINT_PREFIX) and value.endswith(GEOPOINT_SUFFIX):
        return {"geoPointValue": parse_geopoint(value)}
    return {"stringValue": value}


def _encode_number(value: float) -> Dict[str, Any]:
    if isinstance(value, int):
        return {"integerValue": value}
    if not math.isfinite(value):
        raise FormatError(f"Cannot encode non-finite number: {value}")
    if value.is_integer():
        return {"integerValue": int(value)}
    return {"doubleValue": value}


def encode_value(value: DocumentValue, now: datetime.datetime) -> Dict[str, Any]:
    """
    Recursively encode one value.

    Args:
        value (DocumentValue): The value to encode.
        now (datetime): Instant substituted for every Timestamp sentinel.

    Returns:
        Dict[str, Any]: A single-key tagged wire value.

    Raises:
        FormatError: For a malformed sentinel or a value outside the document model.
    """
    if value is None:
        return {"nullValue": None}
    # bool must be checked before int: bool is an int subclass.
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, str):
        return _encode_string(value, now)
    if isinstance(value, (int, float)):
        return _encode_number(value)
    if isinstance(value, list):
        return {"arrayValue": {"values": [encode_value(v, now) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value, now)}}
    raise FormatError(f"Unsupported value type: {type(value).__name__}")


def encode_fields(doc: Dict[str, DocumentValue], now: datetime.datetime) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, val in doc.items():
        if not isinstance(key, str):
            raise FormatError(f"Field names must be strings, got {key!r}")
        fields[key] = encode_value(val, now)
    return fields


def encode_document(
    doc: Document, now: Optional[datetime.datetime] = None
) -> Dict[str, Any]:
    """
    Encode a whole document into a create-document request body.

    The clock is read once, so every Timestamp sentinel in the document gets
    the same instant.

    Args:
        doc (Document): A string-keyed mapping of document values.
        now (Optional[datetime]): Override for the Timestamp instant.

    Returns:
        Dict[str, Any]: {"fields": {...}} ready to be sent as JSON.

    Raises:
        FormatError: If any field cannot be encoded.
    """
    if not isinstance(doc, dict):
        raise FormatError(f"Document must be a JSON object, got {type(doc).__name__}")
    instant = now or datetime.datetime.now(datetime.timezone.utc)
    return {"fields": encode_fields(doc, instant)}


__all__ = [
    "FormatError",
    "TIMESTAMP_SENTINEL",
    "format_timestamp",
    "parse_geopoint",
    "encode_value",
    "encode_fields",
    "encode_document",
]
