"""Configuration for the gateway runtime resolved from the environment."""

from __future__ import annotations

import logging

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from apollo_gateway import __version__

DEFAULT_APOLLO_BASE_URL = "https://api.apollo.io/api/v1"
DEFAULT_APOLLO_APP_BASE_URL = "https://app.apollo.io/api/v1"
DEFAULT_SERVER_NAME = "apollo-io-manager"


class Settings(BaseSettings):
    """Gateway runtime configuration.

    The Apollo.io key configured here is only the process-wide default; a key
    passed explicitly or supplied with a request takes precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # --- Server ---
    host: str = Field(default="0.0.0.0", alias="HOST")  # noqa: S104
    port: int = Field(default=3000, alias="PORT", ge=1, le=65535)
    access_token: SecretStr | None = Field(default=None, alias="GATEWAY_ACCESS_TOKEN")
    sse_keepalive_seconds: float = Field(default=15.0, alias="SSE_KEEPALIVE_SECONDS", gt=0)
    server_name: str = DEFAULT_SERVER_NAME
    server_version: str = __version__

    # --- Apollo.io ---
    apollo_api_key: SecretStr | None = Field(default=None, alias="APOLLO_IO_API_KEY")
    apollo_base_url: str = Field(default=DEFAULT_APOLLO_BASE_URL, alias="APOLLO_BASE_URL")
    apollo_app_base_url: str = Field(default=DEFAULT_APOLLO_APP_BASE_URL, alias="APOLLO_APP_BASE_URL")
    apollo_timeout_seconds: float = Field(default=30.0, alias="APOLLO_TIMEOUT_SECONDS", gt=0)

    @property
    def apollo_api_key_value(self) -> str | None:
        if self.apollo_api_key is None:
            return None
        value = self.apollo_api_key.get_secret_value().strip()
        return value or None

    @property
    def access_token_value(self) -> str | None:
        if self.access_token is None:
            return None
        value = self.access_token.get_secret_value().strip()
        return value or None

    # --- Loader ---
    @classmethod
    def load(cls) -> Settings:
        instance = cls()
        logger = logging.getLogger("apollo_gateway.settings")
        logger.info("gateway settings loaded: %r", instance)
        return instance


__all__ = ["Settings", "DEFAULT_APOLLO_BASE_URL", "DEFAULT_APOLLO_APP_BASE_URL"]
