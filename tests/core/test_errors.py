"""Tests for dataapi.core.errors module."""

import pytest

from dataapi.command.command import Command
from dataapi.command.execution_info import ExecutionInfo
from dataapi.command.response import (
    ApiResponseHttp,
    DataAPIErrorDescriptor,
    DataAPIResponse,
)
from dataapi.core.errors import (
    ConfigError,
    DataAPIError,
    DataAPIResponseError,
    ErrorCategory,
    ErrorContext,
    HttpStatusError,
    InvalidEndpointError,
    MappingError,
    MissingConfigError,
    NetworkError,
    RequestTimeoutError,
    RetryExhaustedError,
    SerializationError,
    TransportError,
    categorize_error,
    get_retry_after,
    is_retryable,
)
from dataapi.serdes import DataAPISerializer


def _failed_info(*descriptors: DataAPIErrorDescriptor) -> ExecutionInfo:
    builder = ExecutionInfo.builder(Command.create("insertOne"), DataAPISerializer())
    builder.with_request_id("req-1").with_request_url("https://db/api/json/v1/ks/c")
    builder.with_http_response(ApiResponseHttp(status_code=200, body="{}"))
    builder.with_api_response(DataAPIResponse(errors=list(descriptors)))
    return builder.build()


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        """Create context with no fields set."""
        ctx = ErrorContext()
        assert ctx.command is None
        assert ctx.url is None
        assert ctx.metadata == {}

    def test_to_dict_includes_set_fields(self):
        """to_dict includes only non-None fields."""
        ctx = ErrorContext(command="findOne", http_status=503, metadata={"key": "value"})
        d = ctx.to_dict()
        assert d == {"command": "findOne", "http_status": 503, "key": "value"}


class TestDataAPIError:
    """Test base DataAPIError."""

    def test_defaults(self):
        error = DataAPIError("Something went wrong")
        assert error.message == "Something went wrong"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_cause_is_chained(self):
        """cause= sets __cause__ for tracebacks."""
        original = ConnectionError("reset")
        error = DataAPIError("wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_with_context_sets_known_fields_and_metadata(self):
        error = DataAPIError("failed").with_context(command="insertMany", shard="a")
        assert error.context.command == "insertMany"
        assert error.context.metadata == {"shard": "a"}

    def test_to_dict(self):
        error = NetworkError("down", cause=OSError("x")).with_context(url="https://db")
        d = error.to_dict()
        assert d["error_type"] == "NetworkError"
        assert d["category"] == "NETWORK"
        assert d["retryable"] is True
        assert d["context"] == {"url": "https://db"}
        assert d["cause"] == "x"


class TestConfigErrors:
    """Configuration errors are never retryable."""

    def test_missing_config(self):
        error = MissingConfigError("http_client_options")
        assert isinstance(error, ConfigError)
        assert error.key == "http_client_options"
        assert "http_client_options" in str(error)
        assert error.retryable is False
        assert error.category == ErrorCategory.CONFIG

    def test_invalid_endpoint_keeps_url(self):
        error = InvalidEndpointError("ftp://nowhere")
        assert error.url == "ftp://nowhere"
        assert error.context.url == "ftp://nowhere"
        assert str(error) == "Invalid URL 'ftp://nowhere'"


class TestTransportErrors:
    """Transport errors are retryable unless terminal."""

    def test_network_and_timeout_are_retryable(self):
        assert NetworkError("reset").retryable is True
        assert RequestTimeoutError("slow").retryable is True

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_transient_statuses_are_retryable(self, status):
        assert HttpStatusError(status).retryable is True

    @pytest.mark.parametrize("status", [400, 404, 409])
    def test_client_statuses_are_terminal(self, status):
        assert HttpStatusError(status).retryable is False

    def test_auth_statuses_have_auth_category(self):
        assert HttpStatusError(401).category == ErrorCategory.AUTH
        assert HttpStatusError(403).category == ErrorCategory.AUTH

    def test_status_error_message_and_context(self):
        error = HttpStatusError(503, "Service\nUnavailable", retry_after=5)
        assert str(error) == "HTTP 503: Service Unavailable"
        assert error.context.http_status == 503
        assert error.retry_after == 5

    def test_retry_exhausted_is_terminal(self):
        error = RetryExhaustedError("POST failed", attempts=3)
        assert isinstance(error, TransportError)
        assert error.retryable is False
        assert error.attempts == 3
        assert error.context.attempts == 3
        assert str(error) == "POST failed (after 3 attempt(s))"


class TestDataAPIResponseError:
    """Application errors wrap execution infos."""

    def test_collects_descriptors_from_infos(self):
        info = _failed_info(
            DataAPIErrorDescriptor(error_code="DOCUMENT_ALREADY_EXISTS", message="dup"),
            DataAPIErrorDescriptor(message="second"),
        )
        error = DataAPIResponseError([info])
        assert error.error_code == "DOCUMENT_ALREADY_EXISTS"
        assert len(error.errors) == 2
        assert str(error) == "[DOCUMENT_ALREADY_EXISTS] dup; second"
        assert error.retryable is False
        assert error.category == ErrorCategory.APPLICATION

    def test_context_from_first_info(self):
        error = DataAPIResponseError([_failed_info(DataAPIErrorDescriptor(message="x"))])
        assert error.context.command == "insertOne"
        assert error.context.request_id == "req-1"
        assert error.context.url == "https://db/api/json/v1/ks/c"
        assert error.context.http_status == 200
        assert error.execution_infos[0].command.name == "insertOne"

    def test_without_descriptors(self):
        error = DataAPIResponseError([])
        assert error.error_code is None
        assert "error response" in str(error)


class TestUtilityFunctions:
    """Test is_retryable, get_retry_after and categorize_error."""

    def test_is_retryable(self):
        assert is_retryable(NetworkError("x")) is True
        assert is_retryable(MappingError("x")) is False
        assert is_retryable(ConnectionResetError()) is True
        assert is_retryable(ValueError()) is False

    def test_get_retry_after(self):
        assert get_retry_after(HttpStatusError(429, retry_after=7)) == 7
        assert get_retry_after(ValueError()) is None

    def test_categorize_error(self):
        assert categorize_error(SerializationError("x")) == ErrorCategory.SERIALIZATION
        assert categorize_error(ConnectionError()) == ErrorCategory.NETWORK
        assert categorize_error(TypeError()) == ErrorCategory.SERIALIZATION
        assert categorize_error(KeyError()) == ErrorCategory.UNKNOWN
