"""Unit tests for password and two-factor sign-in."""

import time

from src.auth_starter.core.identity import totp
from tests.fixtures.core import TEST_PASSWORD


def current_code(key: str) -> str:
    return totp.compute_code(key, int(time.time() // totp.TIME_STEP_SECONDS))


def enable_two_factor(user_manager, user) -> str:
    user_manager.reset_authenticator_key(user)
    user_manager.set_two_factor_enabled(user, True)
    return user_manager.get_authenticator_key(user)


class TestPasswordSignIn:
    async def test_success(self, sign_in_manager, authentication, create_user):
        user = create_user()

        result = await sign_in_manager.password_sign_in(
            "alice@example.com", TEST_PASSWORD, is_persistent=False, lockout_on_failure=True
        )

        assert result.succeeded
        assert await sign_in_manager.is_signed_in()
        ticket = await authentication.authenticate()
        assert ticket.user_id == user.id
        assert ticket.security_stamp == user.security_stamp
        assert ticket.authentication_method == "pwd"

    async def test_unknown_user(self, sign_in_manager):
        result = await sign_in_manager.password_sign_in("nobody@example.com", TEST_PASSWORD, False, True)
        assert not result.succeeded
        assert not result.is_locked_out

    async def test_unconfirmed_account_not_allowed(self, sign_in_manager, create_user):
        create_user(confirmed=False)
        result = await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        assert result.is_not_allowed
        assert not await sign_in_manager.is_signed_in()

    async def test_wrong_password_counts_towards_lockout(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        for _ in range(4):
            result = await sign_in_manager.password_sign_in("alice@example.com", "Wrong0rd!", False, True)
            assert not result.succeeded and not result.is_locked_out

        result = await sign_in_manager.password_sign_in("alice@example.com", "Wrong0rd!", False, True)
        assert result.is_locked_out

        # Even the right password is refused while locked out
        result = await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        assert result.is_locked_out
        assert user_manager.is_locked_out(user_manager.find_by_id(user.id))

    async def test_without_lockout_on_failure(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        for _ in range(6):
            await sign_in_manager.password_sign_in("alice@example.com", "Wrong0rd!", False, False)
        assert not user_manager.is_locked_out(user_manager.find_by_id(user.id))

    async def test_sign_out(self, sign_in_manager, create_user):
        create_user()
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        await sign_in_manager.sign_out()
        assert not await sign_in_manager.is_signed_in()


class TestTwoFactorSignIn:
    async def test_password_then_authenticator_code(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        key = enable_two_factor(user_manager, user)

        result = await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        assert result.requires_two_factor
        assert not await sign_in_manager.is_signed_in()
        assert (await sign_in_manager.get_two_factor_authentication_user()).id == user.id

        result = await sign_in_manager.two_factor_authenticator_sign_in(
            current_code(key), is_persistent=False, remember_client=True
        )

        assert result.succeeded
        assert await sign_in_manager.is_signed_in()
        assert await sign_in_manager.get_two_factor_authentication_user() is None
        assert await sign_in_manager.is_two_factor_client_remembered(user_manager.find_by_id(user.id))

    async def test_remembered_client_skips_second_factor(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        enable_two_factor(user_manager, user)
        await sign_in_manager.remember_two_factor_client(user_manager.find_by_id(user.id))

        result = await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)

        assert result.succeeded

    async def test_invalid_code(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        key = enable_two_factor(user_manager, user)
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)

        wrong = str((int(current_code(key)) + 500_000) % 1_000_000).zfill(6)
        result = await sign_in_manager.two_factor_authenticator_sign_in(wrong, False, False)

        assert not result.succeeded
        assert not await sign_in_manager.is_signed_in()

    async def test_recovery_code(self, sign_in_manager, user_manager, create_user):
        user = create_user()
        enable_two_factor(user_manager, user)
        codes = user_manager.generate_recovery_codes(user, 2)
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)

        assert not (await sign_in_manager.two_factor_recovery_code_sign_in("XXXXX-XXXXX")).succeeded
        assert (await sign_in_manager.two_factor_recovery_code_sign_in(codes[1])).succeeded
        assert user_manager.count_recovery_codes(user) == 1

    async def test_without_pending_user(self, sign_in_manager):
        assert not (await sign_in_manager.two_factor_authenticator_sign_in("123456", False, False)).succeeded
        assert not (await sign_in_manager.two_factor_recovery_code_sign_in("code")).succeeded


class TestSecurityStamp:
    async def test_refresh_sign_in_keeps_persistence(
        self, sign_in_manager, authentication, user_manager, create_user
    ):
        user = create_user()
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, True, True)
        user_manager.update_security_stamp(user)

        await sign_in_manager.refresh_sign_in(user)

        ticket = await authentication.authenticate()
        assert ticket.is_persistent
        assert ticket.security_stamp == user.security_stamp

    async def test_validate_security_stamp(
        self, sign_in_manager, authentication, user_manager, create_user
    ):
        user = create_user()
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        ticket = await authentication.authenticate()

        assert sign_in_manager.validate_security_stamp(ticket).id == user.id
        user_manager.update_security_stamp(user)
        assert sign_in_manager.validate_security_stamp(ticket) is None
