"""Unit tests for the user manager."""

from datetime import UTC, datetime, timedelta

import pytest

from src.auth_starter.core.identity import totp
from tests.fixtures.core import TEST_PASSWORD


class TestCreate:
    """Test user creation and validation."""

    def test_create_and_find(self, user_manager, create_user):
        user = create_user(confirmed=False)

        assert user_manager.find_by_id(user.id).user_name == "alice@example.com"
        assert user_manager.find_by_email("ALICE@example.com").id == user.id
        assert user_manager.find_by_name(" alice@EXAMPLE.com ").id == user.id
        assert not user_manager.is_email_confirmed(user)
        assert user_manager.has_password(user)

    def test_duplicate_email_rejected(self, user_manager, create_user):
        create_user()
        result = user_manager.create(user_manager.new_user("Alice@Example.com"), TEST_PASSWORD)

        assert not result.succeeded
        assert {error.code for error in result.errors} == {"DuplicateUserName", "DuplicateEmail"}

    def test_invalid_email_rejected(self, user_manager):
        result = user_manager.create(user_manager.new_user("not-an-email"), TEST_PASSWORD)
        assert [error.code for error in result.errors] == ["InvalidEmail"]

    @pytest.mark.parametrize(
        "password, code",
        [
            ("Pw0!", "PasswordTooShort"),
            ("Passw0rd", "PasswordRequiresNonAlphanumeric"),
            ("Password!", "PasswordRequiresDigit"),
            ("PASSW0RD!", "PasswordRequiresLower"),
            ("passw0rd!", "PasswordRequiresUpper"),
        ],
    )
    def test_password_rules(self, user_manager, password, code):
        assert [error.code for error in user_manager.validate_password(password)] == [code]

    def test_failed_result_describes_errors(self, user_manager):
        result = user_manager.create(user_manager.new_user("bob@example.com"), "weak")
        assert str(result).startswith("Failed : PasswordTooShort")
        assert "Passwords must be at least 6 characters." in result.messages

    def test_delete(self, user_manager, create_user):
        user = create_user()
        user_manager.add_to_role(user, "Admin")

        assert user_manager.delete(user).succeeded
        assert user_manager.find_by_id(user.id) is None
        assert not user_manager.delete(user).succeeded


class TestPasswords:
    def test_check_password(self, user_manager, create_user):
        user = create_user()
        assert user_manager.check_password(user, TEST_PASSWORD)
        assert not user_manager.check_password(user, "Wrong0rd!")

    def test_change_password_rotates_security_stamp(self, user_manager, create_user):
        user = create_user()
        stamp = user.security_stamp

        result = user_manager.change_password(user, TEST_PASSWORD, "N3w-passw0rd")

        assert result.succeeded
        assert user.security_stamp != stamp
        assert user_manager.check_password(user_manager.find_by_id(user.id), "N3w-passw0rd")

    def test_change_password_requires_current(self, user_manager, create_user):
        result = user_manager.change_password(create_user(), "Wrong0rd!", "N3w-passw0rd")
        assert [error.code for error in result.errors] == ["PasswordMismatch"]

    def test_add_password_only_without_one(self, user_manager, create_user):
        user = create_user(password=None)
        assert not user_manager.has_password(user)
        assert user_manager.add_password(user, TEST_PASSWORD).succeeded
        assert not user_manager.add_password(user, TEST_PASSWORD).succeeded

    def test_reset_password_token_is_single_use(self, user_manager, create_user):
        user = create_user()
        token = user_manager.generate_password_reset_token(user)

        assert user_manager.reset_password(user, token, "N3w-passw0rd").succeeded
        # The security stamp changed, so the same token no longer validates
        assert not user_manager.reset_password(user, token, "An0ther-pass").succeeded


class TestEmail:
    def test_confirm_email(self, user_manager, create_user):
        user = create_user(confirmed=False)
        token = user_manager.generate_email_confirmation_token(user)

        assert not user_manager.confirm_email(user, "bogus").succeeded
        assert user_manager.confirm_email(user, token).succeeded
        assert user_manager.find_by_id(user.id).email_confirmed

    def test_change_email(self, user_manager, create_user):
        user = create_user()
        token = user_manager.generate_change_email_token(user, "alice@new.example")

        assert not user_manager.change_email(user, "other@new.example", token).succeeded
        assert user_manager.change_email(user, "alice@new.example", token).succeeded
        assert user_manager.set_user_name(user, "alice@new.example").succeeded
        assert user_manager.find_by_email("alice@new.example").user_name == "alice@new.example"


class TestLockout:
    def test_locks_after_max_attempts(self, user_manager, create_user):
        user = create_user()
        for _ in range(4):
            user_manager.access_failed(user)
        assert not user_manager.is_locked_out(user)
        assert user.access_failed_count == 4

        user_manager.access_failed(user)

        assert user_manager.is_locked_out(user)
        assert user.access_failed_count == 0
        reloaded = user_manager.find_by_id(user.id)
        assert reloaded.is_locked_out()
        assert not reloaded.is_locked_out(datetime.now(UTC) + timedelta(seconds=301))

    def test_lockout_disabled(self, user_manager, create_user):
        user = create_user()
        user.lockout_enabled = False
        result = user_manager.set_lockout_end_date(user, datetime.now(UTC) + timedelta(hours=1))
        assert [error.code for error in result.errors] == ["UserLockoutNotEnabled"]

    def test_reset_access_failed_count(self, user_manager, create_user):
        user = create_user()
        user_manager.access_failed(user)
        user_manager.reset_access_failed_count(user)
        assert user_manager.find_by_id(user.id).access_failed_count == 0


class TestRolesAndTwoFactor:
    def test_roles(self, user_manager, create_user):
        user = create_user()
        user_manager.add_to_role(user, "Admin")
        user_manager.add_to_role(user, "admin")
        user_manager.add_to_role(user, "Editor")

        assert user_manager.get_roles(user) == ["Admin", "Editor"]
        assert user_manager.remove_from_role(user, "ADMIN").succeeded
        assert user_manager.get_roles(user) == ["Editor"]
        assert not user_manager.remove_from_role(user, "Missing").succeeded

    def test_authenticator_key(self, user_manager, create_user):
        user = create_user()
        assert user_manager.get_authenticator_key(user) is None

        user_manager.reset_authenticator_key(user)
        key = user_manager.get_authenticator_key(user)

        assert key is not None
        code = totp.compute_code(key, int(datetime.now(UTC).timestamp() // 30))
        assert user_manager.verify_authenticator_code(user, code)

    def test_recovery_codes(self, user_manager, create_user):
        user = create_user()
        codes = user_manager.generate_recovery_codes(user, 3)

        assert len(set(codes)) == 3
        assert user_manager.count_recovery_codes(user) == 3
        assert user_manager.redeem_recovery_code(user, codes[0].lower()).succeeded
        assert not user_manager.redeem_recovery_code(user, codes[0]).succeeded
        assert user_manager.count_recovery_codes(user) == 2

    def test_personal_data(self, user_manager, create_user):
        user = create_user()
        user_manager.set_phone_number(user, "555-0100")
        user_manager.set_two_factor_enabled(user, True)

        data = user_manager.get_personal_data(user)

        assert data["Id"] == user.id
        assert data["Email"] == "alice@example.com"
        assert data["PhoneNumber"] == "555-0100"
        assert data["TwoFactorEnabled"] is True
        assert "Authenticator Key" not in data
