"""User domain entity."""

from datetime import UTC, datetime

from pydantic import Field

from src.auth_starter.entities._base import Entity, new_id


class User(Entity):
    """Application user with the standard identity attributes.

    The starter adds no fields of its own; everything here is owned by the
    identity core (registration, sign-in, profile and password management).
    """

    user_name: str = Field(description="Sign-in name (the email address by default)")
    normalized_user_name: str = Field(description="Upper-cased user name for lookups")
    email: str | None = Field(default=None, description="User's email address")
    normalized_email: str | None = Field(default=None)
    email_confirmed: bool = Field(default=False)
    password_hash: str | None = Field(default=None)
    security_stamp: str = Field(
        default_factory=new_id,
        description="Changes whenever credentials change; invalidates sessions",
    )
    concurrency_stamp: str = Field(default_factory=new_id)
    phone_number: str | None = Field(default=None)
    phone_number_confirmed: bool = Field(default=False)
    two_factor_enabled: bool = Field(default=False)
    lockout_end: datetime | None = Field(default=None)
    lockout_enabled: bool = Field(default=True)
    access_failed_count: int = Field(default=0)

    def is_locked_out(self, now: datetime | None = None) -> bool:
        """Whether the account is currently locked out."""
        if not self.lockout_enabled or self.lockout_end is None:
            return False
        now = now or datetime.now(UTC)
        end = self.lockout_end
        if end.tzinfo is None:
            # SQLite drops the offset; values are always stored as UTC
            end = end.replace(tzinfo=UTC)
        return end > now
