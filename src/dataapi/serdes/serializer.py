"""
JSON serializer for Data API commands, documents and rows.

``DataAPISerializer`` converts typed Python values to wire JSON and back.
Encoding and decoding go through an intermediate JSON tree (dicts, lists,
scalars); the codec registry handles every type JSON has no native form for.

Manifesto:
    - **Forward compatible:** Unknown fields in a payload are ignored
    - **Compact:** ``None`` object fields are left out of the output entirely
    - **Lenient on partial payloads:** ``null`` into ``int``/``float``/``bool``
      decodes as the zero value instead of failing
    - **Exact numbers:** ``Decimal`` is written as number text, unchanged, and
      JSON decimals are parsed as ``Decimal`` before any narrowing
    - **Per-instance options:** duration and vector formats travel with the
      serializer, never through global state

Architecture:
    ::

        marshall(value)                       unmarshall(text, target)
            │                                        │
            ▼                                        ▼
        encode(value) ──▶ JSON tree          json.loads(parse_float=Decimal)
            │                                        │
            ▼                                        ▼
        dumps(tree)   ──▶ text               decode(tree, target)
                                                     │
                             ┌───────────────────────┼─────────────────────┐
                             ▼                       ▼                     ▼
                        codec registry        dataclass / pydantic     Any (untyped)
                        (types JSON lacks)    (case-insensitive keys)  ($objectId...)

Examples:
    >>> serializer = DataAPISerializer()
    >>> serializer.marshall({"_id": ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")})
    '{"_id":{"$objectId":"65a1f0c2e4b0a1b2c3d4e5f6"}}'
    >>> serializer.unmarshall('{"n": 1.5}')
    {'n': 1.5}

Tags:
    serialization, json, codecs, dataclasses, pydantic, dataapi-core
"""

from __future__ import annotations

import dataclasses
import functools
import json
import types
import typing
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel

from dataapi.core.errors import DataAPIError, SerializationError
from dataapi.core.types import Float32
from dataapi.serdes.codecs import DEFAULT_REGISTRY, Codec, RawNumber, decode_tagged
from dataapi.serdes.options import DEFAULT_SERDES_OPTIONS, SerdesOptions

_NONE_TYPE = type(None)

_ZERO_VALUES: dict[Any, Any] = {
    int: 0,
    float: 0.0,
    Float32: Float32(0.0),
    bool: False,
}


# =============================================================================
# JSON TEXT
# =============================================================================


def dumps(tree: Any) -> str:
    """Write a JSON tree as compact text.

    ``RawNumber`` strings are written verbatim so ``Decimal`` values keep
    every digit.
    """
    out: list[str] = []
    _write(tree, out)
    return "".join(out)


def _write(node: Any, out: list[str]) -> None:
    if isinstance(node, RawNumber):
        out.append(str.__str__(node))
    elif isinstance(node, str):
        out.append(json.dumps(node, ensure_ascii=False))
    elif node is None:
        out.append("null")
    elif node is True:
        out.append("true")
    elif node is False:
        out.append("false")
    elif isinstance(node, int):
        out.append(int.__repr__(node))
    elif isinstance(node, float):
        out.append(float.__repr__(node))
    elif isinstance(node, Mapping):
        out.append("{")
        for i, (key, value) in enumerate(node.items()):
            if i:
                out.append(",")
            out.append(json.dumps(str(key), ensure_ascii=False))
            out.append(":")
            _write(value, out)
        out.append("}")
    elif isinstance(node, (list, tuple)):
        out.append("[")
        for i, value in enumerate(node):
            if i:
                out.append(",")
            _write(value, out)
        out.append("]")
    else:
        raise SerializationError(f"Not a JSON tree node: {type(node).__name__}")


def loads(text: str | bytes) -> Any:
    """Parse JSON text, keeping decimals exact."""
    try:
        return json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON: {e}", cause=e) from e


# =============================================================================
# FIELD PLANS
# =============================================================================


@dataclasses.dataclass(frozen=True)
class _Field:
    attr: str
    wire: str
    hint: Any
    required: bool
    init: bool
    serialize: bool


@functools.lru_cache(maxsize=None)
def _dataclass_plan(cls: type) -> tuple[_Field, ...]:
    hints = typing.get_type_hints(cls)
    plan = []
    for f in dataclasses.fields(cls):
        plan.append(
            _Field(
                attr=f.name,
                wire=f.metadata.get("alias", f.name),
                hint=hints.get(f.name, Any),
                required=f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING,
                init=f.init,
                serialize=f.metadata.get("serialize", True),
            )
        )
    return tuple(plan)


@functools.lru_cache(maxsize=None)
def _model_plan(cls: type[BaseModel]) -> tuple[_Field, ...]:
    return tuple(
        _Field(
            attr=name,
            wire=info.alias or name,
            hint=info.annotation if info.annotation is not None else Any,
            required=info.is_required(),
            init=True,
            serialize=not info.exclude,
        )
        for name, info in cls.model_fields.items()
    )


def _case_insensitive_index(plan: tuple[_Field, ...]) -> dict[str, _Field]:
    index: dict[str, _Field] = {}
    for f in plan:
        if f.init:
            index[f.wire.lower()] = f
    for f in plan:
        if f.init:
            index.setdefault(f.attr.lower(), f)
    return index


def _zero_value(target: Any) -> Any:
    return _ZERO_VALUES.get(target)


# =============================================================================
# SERIALIZER
# =============================================================================


class DataAPISerializer:
    """
    Converts typed values to and from Data API wire JSON.

    Instances are immutable and safe to share between threads.

    Args:
        options: Encoding choices for durations and vectors
        registry: Codec registry (defaults to the built-in codecs)
    """

    def __init__(
        self,
        options: SerdesOptions | None = None,
        registry: Mapping[type, Codec] | None = None,
    ):
        self.options = options or DEFAULT_SERDES_OPTIONS
        self.registry = registry if registry is not None else DEFAULT_REGISTRY

    def __repr__(self) -> str:
        return f"DataAPISerializer({self.options!r})"

    # ── Text API ─────────────────────────────────────────────────

    def marshall(self, value: Any) -> str:
        """Serialize ``value`` to JSON text."""
        return dumps(self.encode(value))

    def unmarshall(self, text: str | bytes, target: Any = Any) -> Any:
        """Parse JSON text and decode it into ``target``."""
        return self.decode(loads(text), target)

    def convert(self, value: Any, target: Any) -> Any:
        """Re-shape an already-decoded value into ``target`` through its JSON form."""
        return self.decode(self.encode(value), target)

    # ── Tree API ─────────────────────────────────────────────────

    def encode(self, value: Any) -> Any:
        """Convert ``value`` to a JSON tree."""
        codec = self._codec_for(type(value))
        if codec is not None:
            return codec.encode(value, self.options)
        if value is None or isinstance(value, (str, bool, int)):
            return value
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return self._encode_fields(value, _dataclass_plan(type(value)))
        if isinstance(value, BaseModel):
            return self._encode_fields(value, _model_plan(type(value)))
        if isinstance(value, Mapping):
            return {str(key): self.encode(item) for key, item in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.encode(item) for item in value]
        raise SerializationError(f"Cannot serialize value of type {type(value).__name__}")

    def decode(self, raw: Any, target: Any = Any) -> Any:
        """Convert a JSON tree into ``target``.

        Raises:
            SerializationError: if ``raw`` cannot be represented as ``target``
        """
        try:
            return self._decode(raw, target)
        except DataAPIError:
            raise
        except (ValueError, TypeError, KeyError) as e:
            name = getattr(target, "__name__", repr(target))
            raise SerializationError(f"Cannot decode value as {name}: {e}", cause=e) from e

    # ── Internals ────────────────────────────────────────────────

    def _codec_for(self, cls: type) -> Codec | None:
        codec = self.registry.get(cls)
        if codec is not None:
            return codec
        if issubclass(cls, Enum):
            return self.registry.get(Enum)
        for base in cls.__mro__[1:]:
            codec = self.registry.get(base)
            if codec is not None:
                return codec
        return None

    def _encode_fields(self, value: Any, plan: tuple[_Field, ...]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in plan:
            if not f.serialize:
                continue
            item = getattr(value, f.attr)
            if item is None:
                continue
            out[f.wire] = self.encode(item)
        return out

    def _decode(self, raw: Any, target: Any) -> Any:
        if target is Any or target is object:
            return self._decode_untyped(raw)

        origin = typing.get_origin(target)
        if origin is typing.Annotated:
            return self._decode(raw, typing.get_args(target)[0])
        if origin is Union or origin is types.UnionType:
            return self._decode_union(raw, typing.get_args(target))

        if raw is None:
            return _zero_value(target)

        if origin is not None:
            return self._decode_generic(raw, origin, typing.get_args(target))

        if not isinstance(target, type):
            raise TypeError(f"Unsupported target {target!r}")

        codec = self._codec_for(target)
        if codec is not None:
            return codec.decode(raw, target, self.options)
        if target is bool:
            if not isinstance(raw, bool):
                raise ValueError(f"Expected a boolean, got {raw!r}")
            return raw
        if target is int:
            return _decode_int(raw)
        if target is str:
            if isinstance(raw, (dict, list)):
                raise ValueError(f"Expected a string, got {type(raw).__name__}")
            return raw if isinstance(raw, str) else str(raw)
        if dataclasses.is_dataclass(target):
            return target(**self._decode_fields(raw, _dataclass_plan(target)))
        if issubclass(target, BaseModel):
            fields = self._decode_fields(raw, _model_plan(target), by_wire=True)
            return target.model_validate(fields)
        if target in (dict, list, tuple, set, frozenset):
            return self._decode_generic(raw, target, ())
        raise TypeError(f"Unsupported target type {target.__name__}")

    def _decode_union(self, raw: Any, args: tuple[Any, ...]) -> Any:
        candidates = [arg for arg in args if arg is not _NONE_TYPE]
        if raw is None:
            return None if len(candidates) < len(args) else _zero_value(candidates[0])
        if len(candidates) == 1:
            return self._decode(raw, candidates[0])
        last_error: Exception | None = None
        for candidate in candidates:
            try:
                return self._decode(raw, candidate)
            except (ValueError, TypeError, KeyError, SerializationError) as e:
                last_error = e
        raise ValueError(f"No member of the union matches {raw!r}") from last_error

    def _decode_generic(self, raw: Any, origin: Any, args: tuple[Any, ...]) -> Any:
        if origin in (dict, Mapping) or (isinstance(origin, type) and issubclass(origin, Mapping)):
            if not isinstance(raw, Mapping):
                raise ValueError(f"Expected an object, got {type(raw).__name__}")
            value_type = args[1] if len(args) == 2 else Any
            return {str(key): self._decode(item, value_type) for key, item in raw.items()}

        if not isinstance(raw, list):
            raise ValueError(f"Expected an array, got {type(raw).__name__}")
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self._decode(item, args[0]) for item in raw)
            if args:
                if len(args) != len(raw):
                    raise ValueError(f"Expected {len(args)} items, got {len(raw)}")
                return tuple(self._decode(item, t) for item, t in zip(raw, args))
            return tuple(self._decode_untyped(item) for item in raw)
        item_type = args[0] if args else Any
        items = [self._decode(item, item_type) for item in raw]
        if origin in (set, frozenset):
            return origin(items)
        return items

    def _decode_fields(
        self, raw: Any, plan: tuple[_Field, ...], *, by_wire: bool = False
    ) -> dict[str, Any]:
        if not isinstance(raw, Mapping):
            raise ValueError(f"Expected an object, got {type(raw).__name__}")
        index = _case_insensitive_index(plan)
        values: dict[str, Any] = {}
        for key, item in raw.items():
            f = index.get(str(key).lower())
            if f is None:
                continue
            values[f.wire if by_wire else f.attr] = self._decode(item, f.hint)
        for f in plan:
            name = f.wire if by_wire else f.attr
            if f.init and f.required and name not in values:
                values[name] = _zero_value(f.hint)
        return values

    def _decode_untyped(self, raw: Any) -> Any:
        if isinstance(raw, Mapping):
            tagged = decode_tagged(raw)
            if tagged is not raw:
                return tagged
            return {key: self._decode_untyped(item) for key, item in raw.items()}
        if isinstance(raw, list):
            return [self._decode_untyped(item) for item in raw]
        if isinstance(raw, Decimal):
            return float(raw)
        return raw


def _decode_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"Expected an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, Decimal) and raw.is_finite() and raw == raw.to_integral_value():
        return int(raw)
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        return int(raw)
    raise ValueError(f"Expected an integer, got {raw!r}")


__all__ = ["DataAPISerializer", "dumps", "loads"]
