"""Security utilities for anti-forgery tokens, signed payloads and redirects."""

import base64
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from urllib.parse import urlparse

from loguru import logger

from src.auth_starter.runtime.config.config_data import SecurityConfig


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token.

    Args:
        length: Number of random bytes to generate (default 32)

    Returns:
        URL-safe base64 encoded token
    """
    return (
        base64.urlsafe_b64encode(secrets.token_bytes(length))
        .decode("utf-8")
        .rstrip("=")
    )


def resolve_signing_secret(security: SecurityConfig) -> bytes:
    """Secret used for anti-forgery and identity token signatures.

    Without a configured secret a random per-process key is used, which
    invalidates outstanding tokens on restart.
    """
    if security.signing_secret:
        return security.signing_secret.encode("utf-8")
    logger.warning(
        "No signing secret configured; using an ephemeral key. "
        "Tokens will not survive a restart."
    )
    return secrets.token_bytes(32)


@dataclass(frozen=True)
class SigningKey:
    """Process-wide signing secret shared by anti-forgery and identity tokens."""

    value: bytes

    @classmethod
    def from_config(cls, security: SecurityConfig) -> "SigningKey":
        return cls(resolve_signing_secret(security))


def sign(secret: bytes, message: str) -> str:
    return hmac.new(secret, message.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_csrf_token(
    secret: bytes, session_id: str, timestamp: int | None = None
) -> str:
    """Generate CSRF token bound to the anti-forgery cookie and time.

    Args:
        secret: Signing key
        session_id: Anti-forgery cookie value to bind the token to
        timestamp: Optional timestamp (defaults to current hour)

    Returns:
        HMAC-based CSRF token
    """
    if timestamp is None:
        timestamp = int(time.time() // 3600)  # Hour-based for reasonable lifetime

    csrf_token = sign(secret, f"{session_id}:{timestamp}")

    # Include timestamp for verification
    return f"{timestamp}:{csrf_token}"


def validate_csrf_token(
    secret: bytes, session_id: str, csrf_token: str | None, max_age_hours: int = 24
) -> bool:
    """Validate CSRF token for the anti-forgery cookie.

    Args:
        secret: Signing key
        session_id: Anti-forgery cookie value
        csrf_token: CSRF token to validate
        max_age_hours: Maximum age of token in hours

    Returns:
        True if valid, False otherwise
    """
    if not csrf_token or not session_id:
        return False

    try:
        token_timestamp, token_value = csrf_token.split(":", 1)
        timestamp = int(token_timestamp)
    except ValueError:
        return False

    current_hour = int(time.time() // 3600)
    if current_hour - timestamp > max_age_hours or timestamp > current_hour + 1:
        return False

    expected_value = generate_csrf_token(secret, session_id, timestamp).split(":", 1)[1]

    # Constant-time comparison
    return hmac.compare_digest(expected_value, token_value)


def sanitize_return_url(
    return_to: str | None, allowed_hosts: list[str] | None = None
) -> str:
    """Sanitize return URL to prevent open redirects.

    Args:
        return_to: User-provided return URL
        allowed_hosts: Optional list of allowed hosts for absolute URLs

    Returns:
        Sanitized return URL (relative path or allowed absolute URL)
    """
    if not return_to:
        return "/"

    return_to = return_to.strip()

    # Allow relative paths starting with /
    if return_to.startswith("/") and not return_to.startswith(("//", "/\\")):
        # Ensure it's a valid path (no control characters)
        if all(ord(c) >= 32 for c in return_to):
            return return_to

    # Check absolute URLs against allowlist
    if allowed_hosts and return_to.startswith(("http://", "https://")):
        parsed = urlparse(return_to)
        if parsed.hostname in allowed_hosts:
            return return_to

    # Default to safe fallback
    return "/"
