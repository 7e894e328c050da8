"""Tests for parsing Data API responses."""

import pytest

from dataapi.command.response import DataAPIErrorDescriptor, DataAPIResponse
from dataapi.core.errors import MappingError
from dataapi.serdes import DataAPISerializer


@pytest.fixture
def serializer():
    return DataAPISerializer()


class TestDataAPIResponse:
    """Decoding the data / status / errors envelope."""

    def test_document(self, serializer):
        response = serializer.unmarshall(
            '{"data":{"document":{"_id":"1","n":2}},"status":{"ok":1}}', DataAPIResponse
        )
        assert response.data.document == {"_id": "1", "n": 2}
        assert response.data.documents is None
        assert response.status == {"ok": 1}
        assert response.has_errors is False

    def test_documents_page(self, serializer):
        response = serializer.unmarshall(
            '{"data":{"documents":[{"_id":"1"},{"_id":"2"}],"nextPageState":"abc"}}',
            DataAPIResponse,
        )
        assert [d["_id"] for d in response.data.documents] == ["1", "2"]
        assert response.data.next_page_state == "abc"

    def test_errors(self, serializer):
        response = serializer.unmarshall(
            '{"errors":[{"errorCode":"DOCUMENT_ALREADY_EXISTS","message":"dup",'
            '"family":"REQUEST","exceptionClass":"JsonApiException","extra":1}]}',
            DataAPIResponse,
        )
        assert response.has_errors is True
        error = response.errors[0]
        assert error.error_code == "DOCUMENT_ALREADY_EXISTS"
        assert error.family == "REQUEST"
        assert error.exception_class == "JsonApiException"
        assert str(error) == "[DOCUMENT_ALREADY_EXISTS] dup"

    def test_empty_errors_list(self, serializer):
        assert serializer.unmarshall('{"errors":[]}', DataAPIResponse).has_errors is False

    def test_warnings(self, serializer):
        response = serializer.unmarshall(
            '{"status":{"warnings":["zero filter",{"message":"deprecated"}]}}', DataAPIResponse
        )
        assert response.warnings == ["zero filter", {"message": "deprecated"}]
        assert DataAPIResponse().warnings == []


class TestErrorDescriptor:
    @pytest.mark.parametrize(
        "descriptor, text",
        [
            (DataAPIErrorDescriptor(error_code="E", message="m"), "[E] m"),
            (DataAPIErrorDescriptor(message="m"), "m"),
            (DataAPIErrorDescriptor(title="t"), "t"),
            (DataAPIErrorDescriptor(), "Unknown error"),
        ],
    )
    def test_str(self, descriptor, text):
        assert str(descriptor) == text


class TestStatusKey:
    """get_status_key_as."""

    def test_decode_key(self):
        response = DataAPIResponse(status={"insertedIds": ["1", "2"], "count": 3})
        assert response.get_status_key_as("insertedIds", list[str]) == ["1", "2"]
        assert response.get_status_key_as("count", int) == 3

    def test_missing_key(self):
        with pytest.raises(MappingError, match="moreData"):
            DataAPIResponse(status={}).get_status_key_as("moreData", bool)
        with pytest.raises(MappingError):
            DataAPIResponse().get_status_key_as("count", int)
