"""HTTP transport settings: retries, timeouts, proxy, user agent."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import httpx

from dataapi.core.errors import InvalidConfigError

if TYPE_CHECKING:
    from dataapi.core.settings import DataAPISettings

DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 0.1
DEFAULT_CONNECT_TIMEOUT = 20.0
DEFAULT_RESPONSE_TIMEOUT = 20.0


@dataclass(frozen=True)
class Caller:
    """An application or framework embedding the client, shown in the user agent."""

    name: str
    version: str | None = None

    @classmethod
    def parse(cls, text: str) -> Caller:
        """Parse ``"name/version"`` (version optional)."""
        name, _, version = text.partition("/")
        if not name:
            raise InvalidConfigError("callers", text)
        return cls(name=name, version=version or None)

    def __str__(self) -> str:
        return f"{self.name}/{self.version}" if self.version else self.name


@dataclass(frozen=True)
class HttpProxy:
    hostname: str
    port: int
    scheme: str = "http"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.hostname}:{self.port}"


@dataclass(frozen=True)
class HttpClientOptions:
    """
    Settings of the retrying HTTP transport.

    Two instances that compare equal share the same client; a distinct
    instance passed as a per-call override gets a one-off client.

    Attributes:
        retry_count: Maximum attempts per request, the first one included
        retry_delay: Seconds to wait between attempts
        connect_timeout: Seconds to establish a connection
        response_timeout: Seconds to wait for the response
        follow_redirects: Follow 3xx responses
        proxy: Optional HTTP proxy
        callers: Applications to advertise in the user agent, outermost first
        transport: Custom ``httpx`` transport (mocks, custom mounts)
    """

    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    follow_redirects: bool = True
    proxy: HttpProxy | None = None
    callers: tuple[Caller, ...] = field(default_factory=tuple)
    transport: httpx.BaseTransport | None = None

    def __post_init__(self) -> None:
        if self.retry_count < 1:
            raise InvalidConfigError("retry_count", self.retry_count)
        if self.retry_delay < 0:
            raise InvalidConfigError("retry_delay", self.retry_delay)
        object.__setattr__(self, "callers", tuple(self.callers))

    def with_http_retries(self, count: int, delay: float) -> HttpClientOptions:
        return replace(self, retry_count=count, retry_delay=delay)

    def with_caller(self, name: str, version: str | None = None) -> HttpClientOptions:
        return replace(self, callers=(*self.callers, Caller(name, version)))

    @classmethod
    def from_settings(cls, settings: DataAPISettings) -> HttpClientOptions:
        return cls(
            retry_count=settings.http_retry_count,
            retry_delay=settings.http_retry_delay,
            connect_timeout=settings.connect_timeout,
            response_timeout=settings.response_timeout,
            callers=tuple(Caller.parse(text) for text in settings.callers),
        )


__all__ = ["Caller", "HttpClientOptions", "HttpProxy"]
