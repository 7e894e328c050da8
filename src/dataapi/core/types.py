"""Domain value types that travel through the serializer.

WHY
───
The Data API stores values JSON cannot express natively: packed float32
embeddings, document ids minted client-side, calendar-aware durations, column
type tags. Each gets a small immutable Python type here; the wire encoding for
each lives in ``dataapi.serdes.codecs``.

ARCHITECTURE
────────────
::

    ObjectId         ─ 12-byte id, {"$objectId": "<24 hex>"}
    Float32          ─ float rounded to IEEE-754 binary32
    DataAPIVector    ─ dense float32 embedding, {"$binary": ...} or [..]
    TableDuration    ─ months / days / nanoseconds (CQL duration)
    ColumnType       ─ table column type tag ("text", "vector"...)
    SimilarityMetric ─ vector metric tag ("cosine", "dot_product"...)
"""

from __future__ import annotations

import base64
import binascii
import itertools
import os
import struct
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Iterable, Iterator


class ObjectId:
    """Twelve-byte document identifier, compatible with other Data API drivers.

    Layout: 4-byte big-endian seconds since epoch, 5 random bytes fixed per
    process, 3-byte big-endian counter.

    Example:
        >>> oid = ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")
        >>> str(oid)
        '65a1f0c2e4b0a1b2c3d4e5f6'
    """

    __slots__ = ("_raw",)

    _random = os.urandom(5)
    _counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
    _lock = threading.Lock()

    def __init__(self, oid: str | bytes | ObjectId | None = None):
        if oid is None:
            self._raw = self._generate()
        elif isinstance(oid, ObjectId):
            self._raw = oid._raw
        elif isinstance(oid, bytes):
            if len(oid) != 12:
                raise ValueError(f"ObjectId needs 12 bytes, got {len(oid)}")
            self._raw = oid
        elif isinstance(oid, str):
            if len(oid) != 24:
                raise ValueError(f"Invalid ObjectId hex string: {oid!r}")
            try:
                self._raw = bytes.fromhex(oid)
            except ValueError as e:
                raise ValueError(f"Invalid ObjectId hex string: {oid!r}") from e
        else:
            raise TypeError(f"Cannot build ObjectId from {type(oid).__name__}")

    @classmethod
    def _generate(cls) -> bytes:
        with cls._lock:
            counter = next(cls._counter) & 0xFFFFFF
        return struct.pack(">I", int(time.time()) & 0xFFFFFFFF) + cls._random + counter.to_bytes(3, "big")

    @classmethod
    def is_valid(cls, value: object) -> bool:
        """True if ``value`` can be turned into an ObjectId."""
        try:
            cls(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
        return True

    @property
    def binary(self) -> bytes:
        return self._raw

    @property
    def generation_time(self) -> datetime:
        """Creation time encoded in the id (second precision, UTC)."""
        seconds = struct.unpack(">I", self._raw[:4])[0]
        return datetime.fromtimestamp(seconds, tz=UTC)

    def to_hex(self) -> str:
        return self._raw.hex()

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"ObjectId('{self.to_hex()}')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return self._raw == other._raw
        return NotImplemented

    def __lt__(self, other: ObjectId) -> bool:
        return self._raw < other._raw

    def __hash__(self) -> int:
        return hash(self._raw)


class Float32(float):
    """A float stored with binary32 precision.

    The value is rounded once at construction, so encoding it with the full
    double ``repr`` and decoding it again gives back the identical float.

    Example:
        >>> Float32(0.1)
        Float32(0.10000000149011612)
    """

    def __new__(cls, value: float | str = 0.0) -> Float32:
        rounded = struct.unpack(">f", struct.pack(">f", float(value)))[0]
        return super().__new__(cls, rounded)

    def __repr__(self) -> str:
        return f"Float32({float.__repr__(self)})"


@dataclass(frozen=True)
class DataAPIVector:
    """Dense embedding, packed as big-endian float32 on the wire.

    Components are rounded to float32 at construction so ``to_bytes()`` and
    ``from_bytes()`` are exact inverses.

    Example:
        >>> v = DataAPIVector([0.1, 0.2, 0.3])
        >>> DataAPIVector.from_base64(v.to_base64()) == v
        True
    """

    embeddings: tuple[float, ...]

    def __init__(self, embeddings: Iterable[float]):
        object.__setattr__(
            self, "embeddings", tuple(float(Float32(x)) for x in embeddings)
        )

    @property
    def dimension(self) -> int:
        return len(self.embeddings)

    def __len__(self) -> int:
        return len(self.embeddings)

    def __iter__(self) -> Iterator[float]:
        return iter(self.embeddings)

    def __getitem__(self, index: int) -> float:
        return self.embeddings[index]

    def to_bytes(self) -> bytes:
        return struct.pack(f">{len(self.embeddings)}f", *self.embeddings)

    @classmethod
    def from_bytes(cls, raw: bytes) -> DataAPIVector:
        if len(raw) % 4:
            raise ValueError(f"Packed vector length {len(raw)} is not a multiple of 4")
        return cls(struct.unpack(f">{len(raw) // 4}f", raw))

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_base64(cls, text: str) -> DataAPIVector:
        try:
            raw = base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 vector: {e}") from e
        return cls.from_bytes(raw)


@dataclass(frozen=True)
class TableDuration:
    """Calendar-aware duration: months and days are not fixed lengths.

    Mirrors the table ``duration`` column type. ``timedelta`` covers the
    common case; use this when months matter.
    """

    months: int = 0
    days: int = 0
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        signs = {v > 0 for v in (self.months, self.days, self.nanoseconds) if v}
        if len(signs) > 1:
            raise ValueError("TableDuration components must share the same sign")

    @property
    def is_negative(self) -> bool:
        return self.months < 0 or self.days < 0 or self.nanoseconds < 0


class ColumnType(str, Enum):
    """Table column types, with their canonical wire spelling as value."""

    ASCII = "ascii"
    BIGINT = "bigint"
    BLOB = "blob"
    BOOLEAN = "boolean"
    DATE = "date"
    DECIMAL = "decimal"
    DOUBLE = "double"
    DURATION = "duration"
    FLOAT = "float"
    INET = "inet"
    INT = "int"
    LIST = "list"
    MAP = "map"
    SET = "set"
    SMALLINT = "smallint"
    TEXT = "text"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TIMEUUID = "timeuuid"
    TINYINT = "tinyint"
    UUID = "uuid"
    VARINT = "varint"
    VECTOR = "vector"
    UNSUPPORTED = "unsupported"


class SimilarityMetric(str, Enum):
    """Vector similarity function of a collection or vector index."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dot_product"


__all__ = [
    "ObjectId",
    "Float32",
    "DataAPIVector",
    "TableDuration",
    "ColumnType",
    "SimilarityMetric",
]
