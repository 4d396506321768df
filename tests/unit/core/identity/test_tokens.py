"""Unit tests for purpose-bound identity tokens."""

from src.auth_starter.core.identity.tokens import TokenProviders, TokenPurpose
from src.auth_starter.entities.core.user.entity import User

NOW = 1_700_000_000


def make_user() -> User:
    return User(user_name="alice@example.com", normalized_user_name="ALICE@EXAMPLE.COM")


class TestTokenProviders:
    def test_round_trip(self, token_providers):
        user = make_user()
        token = token_providers.generate(TokenPurpose.RESET_PASSWORD, user, NOW)
        assert token_providers.validate(TokenPurpose.RESET_PASSWORD, token, user, NOW + 10)

    def test_purpose_is_bound(self, token_providers):
        user = make_user()
        token = token_providers.generate(TokenPurpose.RESET_PASSWORD, user, NOW)
        assert not token_providers.validate(TokenPurpose.EMAIL_CONFIRMATION, token, user, NOW)

    def test_user_is_bound(self, token_providers):
        token = token_providers.generate(TokenPurpose.RESET_PASSWORD, make_user(), NOW)
        assert not token_providers.validate(TokenPurpose.RESET_PASSWORD, token, make_user(), NOW)

    def test_security_stamp_change_invalidates(self, token_providers):
        user = make_user()
        token = token_providers.generate(TokenPurpose.RESET_PASSWORD, user, NOW)
        user.security_stamp = "rotated"
        assert not token_providers.validate(TokenPurpose.RESET_PASSWORD, token, user, NOW)

    def test_expired(self, token_providers):
        user = make_user()
        token = token_providers.generate(TokenPurpose.RESET_PASSWORD, user, NOW)
        assert not token_providers.validate(
            TokenPurpose.RESET_PASSWORD, token, user, NOW + 3601
        )

    def test_different_secret(self, token_providers):
        user = make_user()
        token = TokenProviders(b"other").generate(TokenPurpose.RESET_PASSWORD, user, NOW)
        assert not token_providers.validate(TokenPurpose.RESET_PASSWORD, token, user, NOW)

    def test_garbage(self, token_providers):
        user = make_user()
        for token in (None, "", "no-dot", "!!!.sig", "YWJj.sig"):
            assert not token_providers.validate(TokenPurpose.RESET_PASSWORD, token, user, NOW)

    def test_change_email_purpose_is_case_insensitive(self):
        assert TokenPurpose.change_email(" Bob@Example.com ") == "ChangeEmail:BOB@EXAMPLE.COM"
