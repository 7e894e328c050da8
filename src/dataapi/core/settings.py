"""Environment-driven settings for the Data API client.

``DataAPISettings`` gathers everything the command pipeline can be configured
with from the environment (prefix ``DATAAPI_``) or a ``.env`` file, so an
application can build fully-configured ``CommandOptions`` with one call.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not on the first request
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** Matches the defaults of the option classes

Examples:
    >>> import os
    >>> os.environ["DATAAPI_TOKEN"] = "AstraCS:..."
    >>> settings = DataAPISettings()
    >>> settings.configure_logging()                        # doctest: +SKIP
    >>> options = CommandOptions.from_settings(settings)   # doctest: +SKIP

Tags:
    settings, configuration, pydantic, environment, dataapi-core
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dataapi.core.logging import configure_logging


class DataAPISettings(BaseSettings):
    """Settings read from ``DATAAPI_*`` environment variables.

    Fields
    ──────
    token                      : Bearer token sent on every command
    endpoint                   : Base URL of the Data API
    keyspace                   : Default keyspace for runners built from settings
    log_level / log_json       : Structlog configuration
    http_retry_count           : Max HTTP attempts per command
    http_retry_delay           : Seconds between attempts
    connect_timeout            : Seconds to establish a connection
    response_timeout           : Seconds to wait for a response
    encode_duration_as_iso8601 : Duration wire format (ISO vs compact units)
    encode_vectors_as_base64   : Vector wire format (base64 vs float array)
    callers                    : "name/version" entries added to the user agent
    """

    model_config = SettingsConfigDict(
        env_prefix="DATAAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    token: str | None = None
    endpoint: str | None = None
    keyspace: str = "default_keyspace"
    api_version: str = "v1"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    log_requests: bool = False

    # ── HTTP ─────────────────────────────────────────────────────
    http_retry_count: int = Field(default=3, ge=1)
    http_retry_delay: float = Field(default=0.1, ge=0)
    connect_timeout: float = Field(default=20.0, gt=0)
    response_timeout: float = Field(default=20.0, gt=0)
    callers: list[str] = Field(default_factory=list)

    # ── Serialization ────────────────────────────────────────────
    encode_duration_as_iso8601: bool = True
    encode_vectors_as_base64: bool = True

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return value

    def configure_logging(self) -> None:
        """Apply ``log_level`` and ``log_json`` to structlog."""
        configure_logging(self.log_level, self.log_json)
