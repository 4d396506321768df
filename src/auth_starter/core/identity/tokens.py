"""Signed, purpose-bound tokens for email confirmation and password reset.

Tokens embed the issue time, user id and purpose, and are signed together
with the user's security stamp. Changing the stamp (password reset, email
change) invalidates every outstanding token for that user.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import time

from src.auth_starter.core.security import sign
from src.auth_starter.entities.core.user.entity import User


class TokenPurpose:
    EMAIL_CONFIRMATION = "EmailConfirmation"
    RESET_PASSWORD = "ResetPassword"

    @staticmethod
    def change_email(new_email: str) -> str:
        return f"ChangeEmail:{new_email.strip().upper()}"


def _b64encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


class TokenProviders:
    """Default token provider shared by the user manager."""

    def __init__(self, secret: bytes, lifespan_seconds: int = 86400) -> None:
        self._secret = secret
        self._lifespan = lifespan_seconds

    def _signature(self, issued_at: int, user: User, purpose: str) -> str:
        return sign(
            self._secret, f"{issued_at}|{user.id}|{purpose}|{user.security_stamp}"
        )

    def generate(self, purpose: str, user: User, now: float | None = None) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = _b64encode(f"{issued_at}|{user.id}|{purpose}")
        return f"{payload}.{self._signature(issued_at, user, purpose)}"

    def validate(
        self, purpose: str, token: str | None, user: User, now: float | None = None
    ) -> bool:
        if not token:
            return False
        payload, dot, signature = token.strip().partition(".")
        if not dot:
            return False
        try:
            issued_part, user_id, token_purpose = _b64decode(payload).split("|", 2)
            issued_at = int(issued_part)
        except (ValueError, UnicodeDecodeError, binascii.Error):
            return False

        if user_id != user.id or token_purpose != purpose:
            return False

        current = now if now is not None else time.time()
        if current - issued_at > self._lifespan:
            return False

        expected = self._signature(issued_at, user, purpose)
        return hmac.compare_digest(expected, signature)
