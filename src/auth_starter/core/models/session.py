"""Server-side authentication session models."""

import time
from typing import Any

from pydantic import BaseModel, Field


class AuthTicket(BaseModel):
    """Authenticated session stored server-side and referenced by a cookie."""

    id: str = Field(description="Session identifier (the cookie value)")
    scheme: str = Field(description="Authentication scheme that issued the ticket")
    user_id: str = Field(description="Authenticated user ID")
    user_name: str | None = Field(default=None)
    security_stamp: str | None = Field(
        default=None, description="User security stamp at sign-in"
    )
    roles: list[str] = Field(default_factory=list)
    is_persistent: bool = Field(default=False, description="Survives browser restarts")
    authentication_method: str | None = Field(default=None)
    properties: dict[str, Any] = Field(default_factory=dict)
    created_at: int = Field(description="Creation timestamp")
    last_validated_at: int = Field(description="Last security stamp validation")
    expires_at: int = Field(description="Expiration timestamp")

    @classmethod
    def create(
        cls,
        session_id: str,
        scheme: str,
        user_id: str,
        ttl_seconds: int,
        **kwargs: Any,
    ) -> "AuthTicket":
        """Create a new ticket with timestamps."""
        now = int(time.time())
        return cls(
            id=session_id,
            scheme=scheme,
            user_id=user_id,
            created_at=now,
            last_validated_at=now,
            expires_at=now + ttl_seconds,
            **kwargs,
        )

    def is_expired(self) -> bool:
        return time.time() > self.expires_at

    def ttl_seconds(self) -> int:
        return max(int(self.expires_at - time.time()), 1)

    def needs_revalidation(self, interval_seconds: int) -> bool:
        return time.time() - self.last_validated_at >= interval_seconds

    def mark_validated(self) -> None:
        self.last_validated_at = int(time.time())

    def renew(self, ttl_seconds: int) -> bool:
        """Reset the expiration once less than half of ``ttl_seconds`` remains."""
        now = int(time.time())
        if self.expires_at - now >= ttl_seconds / 2:
            return False
        self.expires_at = now + ttl_seconds
        return True
