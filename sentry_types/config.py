"""Configuration management using Pydantic Settings."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .protocol.versions import ProtocolVersion, get_policy


class Settings(BaseSettings):
    """Package defaults loaded from ``SENTRY_TYPES_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SENTRY_TYPES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Protocol
    default_protocol_version: ProtocolVersion = ProtocolVersion.LATEST

    # Client identity used in auth headers
    client_name: str = "sentry-types.python"
    client_version: str = "0.21.0"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("default_protocol_version", mode="before")
    @classmethod
    def parse_protocol_version(cls, v: Any) -> ProtocolVersion:
        """Resolve the version through the registry so unknown ones fail early."""
        if v is None or v == "":
            return ProtocolVersion.LATEST
        return get_policy(v).version

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v: Any) -> str:
        """Normalize log level names to upper case."""
        if v is None or v == "":
            return "INFO"
        return str(v).strip().upper()


# Global settings instance
settings = Settings()
