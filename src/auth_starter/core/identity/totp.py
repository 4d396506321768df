"""Time-based one-time passwords (RFC 6238) for authenticator apps."""

import base64
import hashlib
import hmac
import secrets
import struct
import time
from urllib.parse import quote

TIME_STEP_SECONDS = 30
CODE_DIGITS = 6


def generate_key() -> str:
    """A new base32 shared secret (160 bits)."""
    return base64.b32encode(secrets.token_bytes(20)).decode("ascii")


def _decode_key(key: str) -> bytes:
    normalized = key.replace(" ", "").upper()
    return base64.b32decode(normalized + "=" * (-len(normalized) % 8))


def compute_code(key: str, timestep: int) -> str:
    digest = hmac.new(_decode_key(key), struct.pack(">Q", timestep), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    binary = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF
    return str(binary % (10**CODE_DIGITS)).zfill(CODE_DIGITS)


def verify_code(key: str, code: str, now: float | None = None, window: int = 1) -> bool:
    """Check a code against the current time step, allowing clock drift."""
    code = code.replace(" ", "").replace("-", "")
    if len(code) != CODE_DIGITS or not code.isdigit():
        return False
    current = int((now if now is not None else time.time()) // TIME_STEP_SECONDS)
    return any(
        hmac.compare_digest(compute_code(key, current + offset), code)
        for offset in range(-window, window + 1)
    )


def format_key(key: str) -> str:
    """Split the key into groups of four for manual entry."""
    lowered = key.lower()
    return " ".join(lowered[i : i + 4] for i in range(0, len(lowered), 4))


def authenticator_uri(issuer: str, account: str, key: str) -> str:
    label = quote(f"{issuer}:{account}")
    return (
        f"otpauth://totp/{label}?secret={key}&issuer={quote(issuer)}&digits={CODE_DIGITS}"
    )
