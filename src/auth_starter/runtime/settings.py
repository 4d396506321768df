"""Process environment variables consumed at startup."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.auth_starter.runtime.environment import Environment


class EnvironmentVariables(BaseSettings):
    """Simple primitive values loaded from environment variables and .env files.

    The hosting platform injects ``DATABASE_URL_POSTGRESQL`` and ``PORT``; the
    environment name selects the development or production pipeline.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str | None = Field(
        default=None, validation_alias="DATABASE_URL_POSTGRESQL"
    )
    port: str | None = Field(default=None, validation_alias="PORT")
    environment: Environment = Field(
        default=Environment.PRODUCTION,
        validation_alias="APP_ENVIRONMENT",
    )
    config_file: str = Field(default="config.yaml", validation_alias="APP_CONFIG_FILE")

    @field_validator("environment", mode="before")
    @classmethod
    def _parse_environment(cls, value: object) -> Environment:
        if isinstance(value, Environment):
            return value
        return Environment.parse(str(value) if value is not None else None)

    def resolve_port(self, default: int = 8080) -> int:
        """Port the server binds to; ``PORT`` wins over the configured default."""
        if self.port is None:
            return default
        try:
            return int(self.port)
        except ValueError as e:
            raise ValueError(f"PORT must be an integer, got '{self.port}'") from e
