"""Tests for DataAPISerializer (documents, rows, typed decoding)."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

import pytest
from pydantic import BaseModel, Field

from dataapi.core.errors import SerializationError
from dataapi.core.types import Float32, ObjectId
from dataapi.serdes import DataAPISerializer, dumps, loads

OID = "65a1f0c2e4b0a1b2c3d4e5f6"


@dataclass
class Movie:
    title: str
    year: int
    tags: list[str] = field(default_factory=list)
    rating: float | None = None


@dataclass
class Document:
    id: ObjectId | None = field(default=None, metadata={"alias": "_id"})
    name: str = ""
    cache_key: str = field(default="local", metadata={"serialize": False})


@dataclass
class Counters:
    hits: int
    ratio: float
    weight: Float32
    active: bool
    label: str


class Row(BaseModel):
    row_id: str = Field(alias="_id")
    score: float = 0.0
    note: Optional[str] = None
    secret: str = Field(default="", exclude=True)


@pytest.fixture
def serializer():
    return DataAPISerializer()


class TestJsonText:
    """dumps / loads."""

    def test_dumps_is_compact(self):
        assert dumps({"a": [1, True, None, "é"]}) == '{"a":[1,true,null,"é"]}'

    def test_dumps_rejects_non_tree_values(self):
        with pytest.raises(SerializationError):
            dumps({"a": object()})

    def test_loads_keeps_decimals(self):
        assert loads('{"n": 0.1}') == {"n": Decimal("0.1")}

    def test_loads_invalid_json(self):
        with pytest.raises(SerializationError, match="Invalid JSON"):
            loads("{bad")


class TestEncode:
    """Encoding values to the wire."""

    def test_dataclass(self, serializer):
        assert serializer.marshall(Movie("Alien", 1979)) == '{"title":"Alien","year":1979,"tags":[]}'

    def test_dataclass_alias_and_skipped_fields(self, serializer):
        doc = Document(id=ObjectId(OID), name="n", cache_key="x")
        assert serializer.encode(doc) == {"_id": {"$objectId": OID}, "name": "n"}

    def test_none_fields_omitted(self, serializer):
        assert serializer.encode(Document(name="n")) == {"name": "n"}

    def test_plain_dict_keeps_null(self, serializer):
        assert serializer.marshall({"$set": {"rating": None}}) == '{"$set":{"rating":null}}'

    def test_pydantic_model(self, serializer):
        row = Row(_id="r1", score=2.5, secret="s")
        assert serializer.encode(row) == {"_id": "r1", "score": 2.5}

    def test_collections(self, serializer):
        assert serializer.encode((1, 2)) == [1, 2]
        assert serializer.encode(frozenset({3})) == [3]

    def test_nested_dataclass_in_command(self, serializer):
        payload = {"insertOne": {"document": Movie("Alien", 1979, rating=8.5)}}
        assert serializer.marshall(payload) == (
            '{"insertOne":{"document":{"title":"Alien","year":1979,"tags":[],"rating":8.5}}}'
        )

    def test_unsupported_value(self, serializer):
        with pytest.raises(SerializationError, match="object"):
            serializer.marshall(object())


class TestDecode:
    """Decoding wire JSON into typed values."""

    def test_dataclass_case_insensitive_and_unknown_ignored(self, serializer):
        movie = serializer.unmarshall('{"TITLE":"Alien","Year":1979,"extra":{"x":1}}', Movie)
        assert movie == Movie("Alien", 1979)

    def test_dataclass_alias(self, serializer):
        doc = serializer.unmarshall('{"_id":{"$objectId":"%s"},"name":"n"}' % OID, Document)
        assert doc.id == ObjectId(OID)
        assert doc.cache_key == "local"

    def test_null_into_primitive_fields(self, serializer):
        counters = serializer.unmarshall(
            '{"hits":null,"ratio":null,"weight":null,"active":null,"label":null}', Counters
        )
        assert counters == Counters(hits=0, ratio=0.0, weight=Float32(0.0), active=False, label=None)

    def test_missing_required_fields_get_zero_values(self, serializer):
        assert serializer.unmarshall("{}", Movie) == Movie(title=None, year=0)

    def test_pydantic_model(self, serializer):
        row = serializer.unmarshall('{"_ID":"r1","score":1.25,"other":true}', Row)
        assert row.row_id == "r1"
        assert row.score == 1.25
        assert row.note is None

    def test_generic_containers(self, serializer):
        assert serializer.unmarshall('{"a":[1,2]}', dict[str, list[int]]) == {"a": [1, 2]}
        assert serializer.unmarshall("[1,2,2]", set[int]) == {1, 2}
        assert serializer.unmarshall('[1,"x"]', tuple[int, str]) == (1, "x")
        assert serializer.unmarshall("[1,2]", tuple[int, ...]) == (1, 2)

    def test_optional_and_union(self, serializer):
        assert serializer.unmarshall("null", Optional[int]) is None
        assert serializer.unmarshall("5", int | None) == 5
        assert serializer.unmarshall('"x"', int | str) == "x"

    def test_annotated(self, serializer):
        assert serializer.unmarshall("3", Annotated[int, "count"]) == 3

    def test_integral_decimal_into_int(self, serializer):
        assert serializer.unmarshall("2.0", int) == 2
        with pytest.raises(SerializationError):
            serializer.unmarshall("2.5", int)

    def test_type_mismatch(self, serializer):
        with pytest.raises(SerializationError, match="bool"):
            serializer.unmarshall("1", bool)
        with pytest.raises(SerializationError):
            serializer.unmarshall('{"a":1}', list[int])

    def test_untyped(self, serializer):
        value = serializer.unmarshall(
            '{"_id":{"$objectId":"%s"},"at":{"$date":0},"n":1.5,"b":{"$binary":"AAH/"}}' % OID
        )
        assert value == {
            "_id": ObjectId(OID),
            "at": datetime(1970, 1, 1, tzinfo=UTC),
            "n": 1.5,
            "b": {"$binary": "AAH/"},
        }
        assert isinstance(value["n"], float)

    def test_untyped_any_target(self, serializer):
        assert serializer.decode([Decimal("1.5"), 2], Any) == [1.5, 2]


class TestConvert:
    """convert re-shapes values through their wire form."""

    def test_dataclass_to_dict(self, serializer):
        assert serializer.convert(Movie("Alien", 1979), dict) == {
            "title": "Alien",
            "year": 1979,
            "tags": [],
        }

    def test_dict_to_dataclass(self, serializer):
        assert serializer.convert({"title": "Alien", "year": 1979}, Movie) == Movie("Alien", 1979)


class TestOptionsIsolation:
    """Two serializers with different options do not interfere."""

    def test_independent_instances(self):
        from dataapi.core.types import DataAPIVector
        from dataapi.serdes import SerdesOptions

        vector = DataAPIVector([1.0])
        as_list = DataAPISerializer(SerdesOptions(encode_vectors_as_base64=False))
        as_binary = DataAPISerializer()
        assert as_list.encode(vector) == [1.0]
        assert as_binary.encode(vector) == {"$binary": "P4AAAA=="}
