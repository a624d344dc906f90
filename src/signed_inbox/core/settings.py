"""Application settings and configuration.

This module defines all configuration options for the Signed Inbox service.
Settings are loaded from environment variables with sensible defaults.
"""

import json
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Signed Inbox", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # HTTP listener
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # Message store backend
    inbox_store: Literal["set", "table"] = Field(default="set", alias="INBOX_STORE")

    # Redis configuration for the set-store
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "REDIS"),
    )
    redis_key_prefix: str = Field(default="", alias="REDIS_KEY_PREFIX")

    # Database configuration for the table-store
    database_url: str = Field(default="sqlite:///./inbox.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Public key directory
    zenflows_url: str | None = Field(default=None, alias="ZENFLOWS_URL")
    static_public_keys: dict[str, str] = Field(default_factory=dict, alias="STATIC_PUBLIC_KEYS")
    key_directory_timeout_seconds: float = Field(
        default=5.0,
        alias="KEY_DIRECTORY_TIMEOUT_SECONDS",
    )

    # Signature verification
    verifier: Literal["local", "remote"] = Field(default="local", alias="VERIFIER")
    verifier_url: str | None = Field(default=None, alias="VERIFIER_URL")
    verifier_timeout_seconds: float = Field(default=5.0, alias="VERIFIER_TIMEOUT_SECONDS")
    signature_header: str = Field(default="zenflows-sign", alias="SIGNATURE_HEADER")

    # Send responses carry per-receiver outcomes only when enabled
    expose_delivery_outcomes: bool = Field(default=False, alias="EXPOSE_DELIVERY_OUTCOMES")

    # CORS configuration for browser clients
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("static_public_keys", mode="before")
    @classmethod
    def _parse_static_keys(cls, value: object) -> object:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value

    @property
    def effective_redis_url(self) -> str:
        """Return a redis URL, accepting a bare ``host:port`` address.

        Returns:
            URL suitable for ``redis.from_url``
        """
        url = self.redis_url.strip()
        if "://" not in url:
            return f"redis://{url}/0"
        return url


settings = Settings()
