"""
Per-runner and per-call command options.

``CommandOptions`` is a layered bag: a runner holds the base layer, and each
``run`` may pass an override layer. Layers combine field by field:

=============================  ===========================================
field                          rule
=============================  ===========================================
token, http/serdes options     override if set, else base
database / admin headers       union, override wins on the same name
observers                      base names, plus override names not in base
embedding auth headers         both layers sent, base first
=============================  ===========================================

Examples:
    >>> base = CommandOptions(token="AstraCS:...").with_database_additional_header("X", "1")
    >>> local = CommandOptions().with_database_additional_header("Y", "2")
    >>> base.merge(local).database_additional_headers
    {'X': '1', 'Y': '2'}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from dataapi.command.observers import LoggingCommandObserver, Observer, resolve_observers
from dataapi.http.options import Caller, HttpClientOptions, HttpProxy
from dataapi.serdes.options import SerdesOptions

if TYPE_CHECKING:
    from dataapi.core.settings import DataAPISettings

HEADER_FEATURE_FLAG_TABLES = "Feature-Flag-tables"
HEADER_EMBEDDING_API_KEY = "x-embedding-api-key"
HEADER_EMBEDDING_ACCESS_ID = "x-embedding-access-id"
HEADER_EMBEDDING_SECRET_ID = "x-embedding-secret-id"

LOGGING_OBSERVER_NAME = "logging"


@runtime_checkable
class EmbeddingHeadersProvider(Protocol):
    """Supplies the headers that authenticate against an embedding provider."""

    def get_headers(self) -> dict[str, str]: ...


@dataclass(frozen=True)
class EmbeddingAPIKeyHeaderProvider:
    """Single API key, sent as ``x-embedding-api-key``."""

    api_key: str

    def get_headers(self) -> dict[str, str]:
        return {HEADER_EMBEDDING_API_KEY: self.api_key}


@dataclass(frozen=True)
class AWSEmbeddingHeadersProvider:
    """AWS access key pair (Bedrock)."""

    access_id: str
    secret_id: str

    def get_headers(self) -> dict[str, str]:
        return {
            HEADER_EMBEDDING_ACCESS_ID: self.access_id,
            HEADER_EMBEDDING_SECRET_ID: self.secret_id,
        }


@dataclass
class CommandOptions:
    """
    Options of command execution. Setters return ``self`` for chaining.

    Attributes:
        http_client_options: Transport settings; a runner needs them somewhere
        serdes_options: Serializer encoding choices
        embedding_auth_provider: Headers for server-side embedding providers
        database_additional_headers: Extra headers on data-plane commands
        admin_additional_headers: Extra headers on admin-plane commands
        observers: Observers by name, in registration order
        token: Bearer token
    """

    http_client_options: HttpClientOptions | None = None
    serdes_options: SerdesOptions | None = None
    embedding_auth_provider: EmbeddingHeadersProvider | None = None
    database_additional_headers: dict[str, str] = field(default_factory=dict)
    admin_additional_headers: dict[str, str] = field(default_factory=dict)
    observers: dict[str, Observer] = field(default_factory=dict)
    token: str | None = None

    # ── Fluent setters ───────────────────────────────────────────

    def with_token(self, token: str | None) -> CommandOptions:
        self.token = token
        return self

    def with_http_client_options(self, options: HttpClientOptions) -> CommandOptions:
        self.http_client_options = options
        return self

    def with_http_retries(self, count: int, delay: float) -> CommandOptions:
        current = self.http_client_options or HttpClientOptions()
        self.http_client_options = current.with_http_retries(count, delay)
        return self

    def with_http_proxy(self, proxy: HttpProxy) -> CommandOptions:
        current = self.http_client_options or HttpClientOptions()
        self.http_client_options = replace(current, proxy=proxy)
        return self

    def with_caller(self, name: str, version: str | None = None) -> CommandOptions:
        current = self.http_client_options or HttpClientOptions()
        self.http_client_options = current.with_caller(name, version)
        return self

    def with_serdes_options(self, options: SerdesOptions) -> CommandOptions:
        self.serdes_options = options
        return self

    def with_embedding_auth_provider(self, provider: EmbeddingHeadersProvider) -> CommandOptions:
        self.embedding_auth_provider = provider
        return self

    def with_embedding_api_key(self, api_key: str) -> CommandOptions:
        return self.with_embedding_auth_provider(EmbeddingAPIKeyHeaderProvider(api_key))

    def with_database_additional_header(self, name: str, value: str) -> CommandOptions:
        self.database_additional_headers[name] = value
        return self

    def with_admin_additional_header(self, name: str, value: str) -> CommandOptions:
        self.admin_additional_headers[name] = value
        return self

    def with_feature_flag_tables(self, enabled: bool) -> CommandOptions:
        """Toggle the ``Feature-Flag-tables`` header sent with data-plane commands."""
        return self.with_database_additional_header(
            HEADER_FEATURE_FLAG_TABLES, "true" if enabled else "false"
        )

    def register_observer(self, name: str, observer: Observer) -> CommandOptions:
        self.observers[name] = observer
        return self

    def unregister_observer(self, name: str) -> CommandOptions:
        self.observers.pop(name, None)
        return self

    def log_requests(self) -> CommandOptions:
        """Log every command through ``LoggingCommandObserver``."""
        return self.register_observer(LOGGING_OBSERVER_NAME, LoggingCommandObserver())

    # ── Layering ─────────────────────────────────────────────────

    def clone(self) -> CommandOptions:
        """Copy whose header and observer maps can be changed independently."""
        return CommandOptions(
            http_client_options=self.http_client_options,
            serdes_options=self.serdes_options,
            embedding_auth_provider=self.embedding_auth_provider,
            database_additional_headers=dict(self.database_additional_headers),
            admin_additional_headers=dict(self.admin_additional_headers),
            observers=dict(self.observers),
            token=self.token,
        )

    def merge(self, override: CommandOptions | None) -> CommandOptions:
        """Combine with ``override`` (the per-call layer) into a new instance.

        ``embedding_auth_provider`` takes the override value like any other
        single-valued field; the runner still sends the headers of both
        layers.
        """
        if override is None:
            return self.clone()

        def pick(name: str):
            value = getattr(override, name)
            return value if value is not None else getattr(self, name)

        return CommandOptions(
            http_client_options=pick("http_client_options"),
            serdes_options=pick("serdes_options"),
            embedding_auth_provider=pick("embedding_auth_provider"),
            database_additional_headers={
                **self.database_additional_headers,
                **override.database_additional_headers,
            },
            admin_additional_headers={
                **self.admin_additional_headers,
                **override.admin_additional_headers,
            },
            observers=resolve_observers(self.observers, override.observers),
            token=pick("token"),
        )

    @classmethod
    def from_settings(cls, settings: DataAPISettings) -> CommandOptions:
        options = cls(
            http_client_options=HttpClientOptions.from_settings(settings),
            serdes_options=SerdesOptions.from_settings(settings),
            token=settings.token,
        )
        if settings.log_requests:
            options.log_requests()
        return options


__all__ = [
    "AWSEmbeddingHeadersProvider",
    "Caller",
    "CommandOptions",
    "EmbeddingAPIKeyHeaderProvider",
    "EmbeddingHeadersProvider",
    "HEADER_FEATURE_FLAG_TABLES",
    "HttpClientOptions",
    "HttpProxy",
]
