"""Serializer configuration.

The wire format of durations and vectors used to be a process-wide switch.
Here it is a value carried by each ``DataAPISerializer`` instance, so two
callers wanting different encodings never interfere with each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dataapi.core.settings import DataAPISettings


@dataclass(frozen=True)
class SerdesOptions:
    """Encoding choices for values with more than one wire form.

    Attributes:
        encode_duration_as_iso8601: ``PT1H30M`` when True, ``1h30m`` when False
        encode_vectors_as_base64: ``{"$binary": ...}`` when True, ``[0.1, ...]`` when False
    """

    encode_duration_as_iso8601: bool = True
    encode_vectors_as_base64: bool = True

    @classmethod
    def from_settings(cls, settings: DataAPISettings) -> SerdesOptions:
        return cls(
            encode_duration_as_iso8601=settings.encode_duration_as_iso8601,
            encode_vectors_as_base64=settings.encode_vectors_as_base64,
        )


DEFAULT_SERDES_OPTIONS = SerdesOptions()
