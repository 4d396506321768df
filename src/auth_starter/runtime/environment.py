"""Hosting environment selection."""

from enum import Enum


class Environment(str, Enum):
    """Environment the process is running in.

    Threaded explicitly through pipeline assembly and service registration.
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"

    @classmethod
    def parse(cls, value: str | None) -> "Environment":
        """Parse an environment name, defaulting to production."""
        if not value:
            return cls.PRODUCTION
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValueError(
                f"Invalid environment '{value}'; must be 'development', 'production', or 'test'"
            ) from e

    @property
    def is_development(self) -> bool:
        return self is Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self is Environment.PRODUCTION
