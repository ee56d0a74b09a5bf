"""Configuration utilities.

This module centralises all environment variables used by the client and
the relay app.  The defaults defined here are sensible for local
development.  In production environments you should override these values
via environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Full URL of the chat completions endpoint requests are POSTed to
    chat_endpoint: str = Field(
        "http://localhost:8000/v1/chat/completions", validation_alias="CHAT_ENDPOINT"
    )
    # Credential sent with every request
    chat_api_key: str = Field("", validation_alias="CHAT_API_KEY")
    # Name of the header carrying the credential (Azure style by default)
    api_key_header: str = Field("api-key", validation_alias="CHAT_API_KEY_HEADER")
    # Seconds before the transport gives up; unset means no timeout at all
    request_timeout: Optional[float] = Field(None, validation_alias="CHAT_REQUEST_TIMEOUT")
    # API keys allowed to call the relay app.  Comma‑separated list.
    relay_api_keys: str = Field("", validation_alias="RELAY_API_KEYS")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @property
    def parsed_relay_api_keys(self) -> set[str]:
        """Return the configured relay API keys as a set of stripped strings."""
        return {k.strip() for k in self.relay_api_keys.split(",") if k.strip()}


@lru_cache
def get_settings() -> Settings:
    """Return a singleton instance of Settings."""
    return Settings()
