"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """Application configuration model."""

    name: str = Field(default="auth-starter", description="Application name")
    host: str = Field(default="0.0.0.0", description="Interface the server binds to")
    default_port: int = Field(
        default=8080, description="Port used when the PORT variable is not set"
    )
    templates_dir: str | None = Field(
        default=None, description="Override directory for page templates"
    )
    static_dir: str | None = Field(
        default=None, description="Override directory for static assets"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    default_connection: str | None = Field(
        default=None,
        description="Static connection string used when DATABASE_URL_POSTGRESQL is not set",
    )
    migrate_on_startup: bool = Field(
        default=True, description="Apply pending migrations before serving"
    )
    migration_lock_id: int = Field(
        default=72_521_001,
        description="PostgreSQL advisory lock key taken while migrating",
    )
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class PasswordOptions(BaseModel):
    """Password complexity rules enforced on registration and password changes."""

    required_length: int = Field(default=6)
    require_digit: bool = Field(default=True)
    require_lowercase: bool = Field(default=True)
    require_uppercase: bool = Field(default=True)
    require_non_alphanumeric: bool = Field(default=True)


class LockoutOptions(BaseModel):
    """Account lockout after repeated failed sign-in attempts."""

    allowed_for_new_users: bool = Field(default=True)
    max_failed_access_attempts: int = Field(default=5)
    default_lockout_seconds: int = Field(default=300)


class IdentityConfig(BaseModel):
    """Identity core configuration."""

    require_confirmed_account: bool = Field(
        default=True, description="Users must confirm their email before signing in"
    )
    require_unique_email: bool = Field(default=True)
    revalidation_interval_seconds: int = Field(
        default=1800, description="Interval between security stamp revalidations"
    )
    token_lifespan_seconds: int = Field(
        default=86400, description="Lifetime of confirmation and reset tokens"
    )
    session_max_age: int = Field(
        default=1_209_600, description="Persistent sign-in cookie lifetime in seconds"
    )
    two_factor_session_seconds: int = Field(
        default=300, description="Lifetime of the partial two-factor sign-in"
    )
    authenticator_issuer: str = Field(
        default="auth-starter", description="Issuer shown in authenticator apps"
    )
    password: PasswordOptions = Field(default_factory=PasswordOptions)
    lockout: LockoutOptions = Field(default_factory=LockoutOptions)


class SecurityConfig(BaseModel):
    """Security configuration for cookies, HTTPS and anti-forgery."""

    signing_secret: str | None = Field(
        default=None, description="Secret for signing anti-forgery and identity tokens"
    )
    secure_cookies: bool = Field(
        default=True, description="Mark cookies Secure outside development"
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", description="SameSite cookie attribute"
    )
    hsts_max_age: int = Field(
        default=2_592_000, description="HSTS max-age in seconds (30 days)"
    )
    hsts_include_subdomains: bool = Field(default=False)
    hsts_preload: bool = Field(default=False)
    https_port: int | None = Field(
        default=None, description="Port HTTP requests are redirected to"
    )
    trust_forwarded_proto: bool = Field(
        default=True, description="Honour X-Forwarded-Proto from the platform proxy"
    )
    antiforgery_cookie_name: str = Field(default=".AspNetCore.Antiforgery")
    antiforgery_form_field: str = Field(default="__RequestVerificationToken")
    antiforgery_header_name: str = Field(default="X-CSRF-Token")
    antiforgery_token_max_age_hours: int = Field(default=24)


class RedisConfig(BaseModel):
    """Redis configuration model for the sign-in session store."""

    url: str | None = Field(default=None, description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )

    @property
    def connection_string(self) -> str | None:
        """Construct the Redis connection string with password if provided."""
        if not self.url:
            return None
        if self.password and "@" not in self.url:
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    identity: IdentityConfig = Field(
        default_factory=IdentityConfig, description="Identity configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
