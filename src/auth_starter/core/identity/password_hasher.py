"""bcrypt password hashing."""

from enum import Enum

import bcrypt

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class PasswordVerificationResult(str, Enum):
    FAILED = "failed"
    SUCCESS = "success"
    SUCCESS_REHASH_NEEDED = "success_rehash_needed"


class PasswordHasher:
    """Hash and verify passwords with bcrypt."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify_hashed_password(
        self, hashed_password: str, provided_password: str
    ) -> PasswordVerificationResult:
        encoded = provided_password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return PasswordVerificationResult.FAILED
        try:
            matches = bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
        except ValueError:
            # Not a bcrypt hash
            return PasswordVerificationResult.FAILED
        if not matches:
            return PasswordVerificationResult.FAILED

        # "$2b$12$..." -> cost factor 12
        try:
            cost = int(hashed_password.split("$")[2])
        except (IndexError, ValueError):
            return PasswordVerificationResult.SUCCESS_REHASH_NEEDED
        if cost < self._rounds:
            return PasswordVerificationResult.SUCCESS_REHASH_NEEDED
        return PasswordVerificationResult.SUCCESS
