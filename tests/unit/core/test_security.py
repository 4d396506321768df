"""Unit tests for security helpers."""

import pytest

from src.auth_starter.core.security import (
    SigningKey,
    generate_csrf_token,
    sanitize_return_url,
    validate_csrf_token,
)
from src.auth_starter.runtime.config.config_data import SecurityConfig

SECRET = b"secret"


class TestCsrfTokens:
    def test_valid_token(self):
        token = generate_csrf_token(SECRET, "cookie-value")
        assert validate_csrf_token(SECRET, "cookie-value", token)

    def test_token_bound_to_cookie(self):
        token = generate_csrf_token(SECRET, "cookie-value")
        assert not validate_csrf_token(SECRET, "other-cookie", token)

    def test_token_bound_to_secret(self):
        token = generate_csrf_token(SECRET, "cookie-value")
        assert not validate_csrf_token(b"other", "cookie-value", token)

    def test_expired_token(self):
        token = generate_csrf_token(SECRET, "cookie-value", timestamp=1)
        assert not validate_csrf_token(SECRET, "cookie-value", token)

    @pytest.mark.parametrize("token", [None, "", "garbage", "abc:def"])
    def test_malformed_token(self, token):
        assert not validate_csrf_token(SECRET, "cookie-value", token)


class TestSanitizeReturnUrl:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "/"),
            ("/Account/Manage", "/Account/Manage"),
            ("//evil.example", "/"),
            ("/\\evil.example", "/"),
            ("https://evil.example/", "/"),
            ("javascript:alert(1)", "/"),
        ],
    )
    def test_only_local_paths_survive(self, value, expected):
        assert sanitize_return_url(value) == expected

    def test_allowed_absolute_host(self):
        url = "https://app.example/home"
        assert sanitize_return_url(url, ["app.example"]) == url


class TestSigningKey:
    def test_configured_secret(self):
        key = SigningKey.from_config(SecurityConfig(signing_secret="abc"))
        assert key.value == b"abc"

    def test_ephemeral_secret_without_configuration(self):
        first = SigningKey.from_config(SecurityConfig())
        second = SigningKey.from_config(SecurityConfig())
        assert len(first.value) == 32
        assert first != second
