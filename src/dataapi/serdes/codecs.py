"""Type-specific encode/decode rules.

Each ``Codec`` converts one Python type to a JSON tree fragment and back. The
registry is built once at import time and exposed read-only, so concurrent
serializers share it without any locking.

Wire conventions (shared with the other Data API drivers):

=================  ==========================================================
Python value       JSON
=================  ==========================================================
Float32            full double repr of the binary32 value
float              number, or "NaN" / "Infinity" / "-Infinity"
Decimal            exact number text
bytes              {"$binary": "<base64>"}
DataAPIVector      {"$binary": "<base64 big-endian float32>"} or [f, f, ...]
timedelta          "PT1H30M" or "1h30m"
TableDuration      "P1Y2M3D" or "1y2mo3d"
ObjectId           {"$objectId": "<24 hex>"}
UUID               {"$uuid": "<uuid>"}
datetime           {"$date": <epoch millis>}
date / time        "2024-05-01" / "13:45:00.000"
Enum               lowercase value string
=================  ==========================================================

Dates travel as UTC instants: a naive ``datetime`` is read as UTC on the way
out and every decoded ``datetime`` is UTC-aware.
"""

from __future__ import annotations

import base64
import binascii
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping
from uuid import UUID

from dataapi.core.types import DataAPIVector, Float32, ObjectId, TableDuration
from dataapi.serdes import durations
from dataapi.serdes.options import SerdesOptions

KEY_BINARY = "$binary"
KEY_OBJECT_ID = "$objectId"
KEY_UUID = "$uuid"
KEY_DATE = "$date"

NAN = "NaN"
POSITIVE_INFINITY = "Infinity"
NEGATIVE_INFINITY = "-Infinity"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)


class RawNumber(str):
    """Number text written verbatim by the JSON writer."""


EncodeFn = Callable[[Any, SerdesOptions], Any]
DecodeFn = Callable[[Any, type, SerdesOptions], Any]


@dataclass(frozen=True)
class Codec:
    python_type: type
    encode: EncodeFn
    decode: DecodeFn


def _tagged(raw: Any, key: str) -> Any:
    """Unwrap ``{key: value}`` if ``raw`` is that single-key object."""
    if isinstance(raw, Mapping):
        if key not in raw:
            raise ValueError(f"Expected an object with '{key}', got keys {list(raw)}")
        return raw[key]
    return raw


# -- numbers -----------------------------------------------------------------


def _encode_float(value: float, options: SerdesOptions) -> Any:
    value = float(value)
    if math.isnan(value):
        return NAN
    if math.isinf(value):
        return POSITIVE_INFINITY if value > 0 else NEGATIVE_INFINITY
    return value


def _decode_float(raw: Any, target: type, options: SerdesOptions) -> float:
    if isinstance(raw, bool):
        raise ValueError(f"Cannot decode boolean {raw!r} as {target.__name__}")
    if isinstance(raw, (int, float, Decimal)):
        return target(float(raw))
    if isinstance(raw, str):
        special = {NAN: math.nan, POSITIVE_INFINITY: math.inf, NEGATIVE_INFINITY: -math.inf}
        if raw in special:
            return target(special[raw])
        return target(float(raw))
    raise ValueError(f"Cannot decode {type(raw).__name__} as {target.__name__}")


def _encode_decimal(value: Decimal, options: SerdesOptions) -> Any:
    if value.is_nan():
        return NAN
    if value.is_infinite():
        return POSITIVE_INFINITY if value > 0 else NEGATIVE_INFINITY
    return RawNumber(str(value))


def _decode_decimal(raw: Any, target: type, options: SerdesOptions) -> Decimal:
    if isinstance(raw, bool):
        raise ValueError(f"Cannot decode boolean {raw!r} as Decimal")
    if isinstance(raw, Decimal):
        return raw
    if isinstance(raw, (int, float, str)):
        try:
            return Decimal(str(raw))
        except InvalidOperation as e:
            raise ValueError(f"Invalid decimal {raw!r}") from e
    raise ValueError(f"Cannot decode {type(raw).__name__} as Decimal")


# -- binary ------------------------------------------------------------------


def _encode_bytes(value: bytes, options: SerdesOptions) -> Any:
    return {KEY_BINARY: base64.b64encode(bytes(value)).decode("ascii")}


def _decode_bytes(raw: Any, target: type, options: SerdesOptions) -> bytes:
    text = _tagged(raw, KEY_BINARY)
    if not isinstance(text, str):
        raise ValueError(f"Expected base64 text, got {type(text).__name__}")
    try:
        return target(base64.b64decode(text, validate=True))
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def _encode_vector(value: DataAPIVector, options: SerdesOptions) -> Any:
    if options.encode_vectors_as_base64:
        return {KEY_BINARY: value.to_base64()}
    return list(value.embeddings)


def _decode_vector(raw: Any, target: type, options: SerdesOptions) -> DataAPIVector:
    if isinstance(raw, list):
        return DataAPIVector(_decode_float(x, float, options) for x in raw)
    text = _tagged(raw, KEY_BINARY)
    if not isinstance(text, str):
        raise ValueError(f"Expected a float array or base64 vector, got {type(raw).__name__}")
    return DataAPIVector.from_base64(text)


# -- durations ---------------------------------------------------------------


def _format_duration(parts: tuple[bool, int, int, int], options: SerdesOptions) -> str:
    if options.encode_duration_as_iso8601:
        return durations.format_iso(*parts)
    return durations.format_compact(*parts)


def _encode_timedelta(value: timedelta, options: SerdesOptions) -> Any:
    return _format_duration(durations.timedelta_parts(value), options)


def _decode_timedelta(raw: Any, target: type, options: SerdesOptions) -> timedelta:
    if not isinstance(raw, str):
        raise ValueError(f"Expected a duration string, got {type(raw).__name__}")
    return durations.to_timedelta(*durations.parse_duration(raw))


def _encode_table_duration(value: TableDuration, options: SerdesOptions) -> Any:
    return _format_duration(durations.table_duration_parts(value), options)


def _decode_table_duration(raw: Any, target: type, options: SerdesOptions) -> TableDuration:
    if not isinstance(raw, str):
        raise ValueError(f"Expected a duration string, got {type(raw).__name__}")
    return durations.to_table_duration(*durations.parse_duration(raw))


# -- identifiers -------------------------------------------------------------


def _encode_object_id(value: ObjectId, options: SerdesOptions) -> Any:
    return {KEY_OBJECT_ID: value.to_hex()}


def _decode_object_id(raw: Any, target: type, options: SerdesOptions) -> ObjectId:
    return ObjectId(_tagged(raw, KEY_OBJECT_ID))


def _encode_uuid(value: UUID, options: SerdesOptions) -> Any:
    return {KEY_UUID: str(value)}


def _decode_uuid(raw: Any, target: type, options: SerdesOptions) -> UUID:
    return UUID(_tagged(raw, KEY_UUID))


# -- dates and times ---------------------------------------------------------


def _encode_datetime(value: datetime, options: SerdesOptions) -> Any:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return {KEY_DATE: (value - _EPOCH) // _MILLISECOND}


def _decode_datetime(raw: Any, target: type, options: SerdesOptions) -> datetime:
    value = _tagged(raw, KEY_DATE)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return _EPOCH + int(value) * _MILLISECOND
    raise ValueError(f"Cannot decode {type(value).__name__} as datetime")


def _encode_date(value: date, options: SerdesOptions) -> Any:
    return value.isoformat()


def _decode_date(raw: Any, target: type, options: SerdesOptions) -> date:
    return date.fromisoformat(raw)


def _encode_time(value: time, options: SerdesOptions) -> Any:
    return value.isoformat(timespec="milliseconds")


def _decode_time(raw: Any, target: type, options: SerdesOptions) -> time:
    return time.fromisoformat(raw)


# -- enumerations ------------------------------------------------------------


def _encode_enum(value: Enum, options: SerdesOptions) -> Any:
    if isinstance(value.value, str):
        return value.value.lower()
    return value.value


def _decode_enum(raw: Any, target: type, options: SerdesOptions) -> Enum:
    if isinstance(raw, target):
        return raw
    try:
        return target(raw)
    except ValueError:
        pass
    if isinstance(raw, str):
        folded = raw.lower()
        for member in target:
            if str(member.value).lower() == folded or member.name.lower() == folded:
                return member
    raise ValueError(f"{raw!r} is not a valid {target.__name__}")


def build_registry() -> Mapping[type, Codec]:
    """Build the read-only default codec registry."""
    codecs = [
        Codec(Float32, _encode_float, _decode_float),
        Codec(float, _encode_float, _decode_float),
        Codec(Decimal, _encode_decimal, _decode_decimal),
        Codec(bytes, _encode_bytes, _decode_bytes),
        Codec(bytearray, _encode_bytes, _decode_bytes),
        Codec(DataAPIVector, _encode_vector, _decode_vector),
        Codec(timedelta, _encode_timedelta, _decode_timedelta),
        Codec(TableDuration, _encode_table_duration, _decode_table_duration),
        Codec(ObjectId, _encode_object_id, _decode_object_id),
        Codec(UUID, _encode_uuid, _decode_uuid),
        Codec(datetime, _encode_datetime, _decode_datetime),
        Codec(date, _encode_date, _decode_date),
        Codec(time, _encode_time, _decode_time),
        Codec(Enum, _encode_enum, _decode_enum),
    ]
    return MappingProxyType({codec.python_type: codec for codec in codecs})


DEFAULT_REGISTRY = build_registry()


def decode_tagged(raw: Mapping[str, Any]) -> Any:
    """Turn a single-key ``$objectId`` / ``$uuid`` / ``$date`` object into its value.

    Returns ``raw`` unchanged for anything else. ``$binary`` stays untouched:
    without a target type it could be either a blob or a vector.
    """
    if len(raw) != 1:
        return raw
    key = next(iter(raw))
    if key == KEY_OBJECT_ID:
        return ObjectId(raw[key])
    if key == KEY_UUID:
        return UUID(raw[key])
    if key == KEY_DATE:
        return _decode_datetime(raw, datetime, SerdesOptions())
    return raw
