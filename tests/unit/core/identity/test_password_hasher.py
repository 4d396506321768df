"""Unit tests for bcrypt password hashing."""

import bcrypt

from src.auth_starter.core.identity.password_hasher import (
    PasswordHasher,
    PasswordVerificationResult,
)


def test_hash_and_verify(password_hasher):
    hashed = password_hasher.hash_password("Passw0rd!")

    assert hashed.startswith("$2b$04$")
    assert (
        password_hasher.verify_hashed_password(hashed, "Passw0rd!")
        is PasswordVerificationResult.SUCCESS
    )
    assert (
        password_hasher.verify_hashed_password(hashed, "wrong")
        is PasswordVerificationResult.FAILED
    )


def test_weaker_hash_needs_rehash():
    weak = bcrypt.hashpw(b"Passw0rd!", bcrypt.gensalt(rounds=4)).decode()
    assert (
        PasswordHasher(rounds=5).verify_hashed_password(weak, "Passw0rd!")
        is PasswordVerificationResult.SUCCESS_REHASH_NEEDED
    )


def test_non_bcrypt_hash_fails(password_hasher):
    assert (
        password_hasher.verify_hashed_password("plain-text", "plain-text")
        is PasswordVerificationResult.FAILED
    )


def test_overlong_password_never_matches(password_hasher):
    hashed = password_hasher.hash_password("a" * 72)
    assert (
        password_hasher.verify_hashed_password(hashed, "a" * 73)
        is PasswordVerificationResult.FAILED
    )
