"""Data API serialization -- typed values to and from wire JSON.

WHY
───
The Data API speaks JSON, but documents and rows carry values JSON has no
native form for: float32 embeddings, exact decimals, binary blobs, durations,
client-minted ids. Each has one agreed wire form shared by every driver, and
the serializer must reproduce those forms exactly in both directions.

ARCHITECTURE
────────────
::

    DataAPISerializer ─ marshall / unmarshall / encode / decode
      ├── codecs.py     ─ immutable type → Codec registry
      ├── durations.py  ─ ISO-8601 and compact duration text
      └── options.py    ─ SerdesOptions (duration / vector formats)
"""

from dataapi.serdes.codecs import DEFAULT_REGISTRY, Codec, RawNumber, build_registry
from dataapi.serdes.options import DEFAULT_SERDES_OPTIONS, SerdesOptions
from dataapi.serdes.serializer import DataAPISerializer, dumps, loads

__all__ = [
    "Codec",
    "DEFAULT_REGISTRY",
    "DEFAULT_SERDES_OPTIONS",
    "DataAPISerializer",
    "RawNumber",
    "SerdesOptions",
    "build_registry",
    "dumps",
    "loads",
]
