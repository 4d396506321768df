"""Password and two-factor sign-in on top of cookie authentication."""

from __future__ import annotations

from loguru import logger
from starlette.concurrency import run_in_threadpool

from src.auth_starter.core.identity.authentication import AuthenticationService
from src.auth_starter.core.identity.constants import IdentityConstants
from src.auth_starter.core.identity.result import SignInResult
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.models.session import AuthTicket
from src.auth_starter.entities.core.user.entity import User
from src.auth_starter.runtime.config.config_data import IdentityConfig


class SignInManager:
    """Signs users in and out for the current request."""

    def __init__(self, user_manager: UserManager, authentication: AuthenticationService):
        self.user_manager = user_manager
        self._auth = authentication

    @property
    def options(self) -> IdentityConfig:
        return self.user_manager.options

    def can_sign_in(self, user: User) -> bool:
        if self.options.require_confirmed_account and not user.email_confirmed:
            logger.debug("User {} cannot sign in without a confirmed account", user.id)
            return False
        return True

    def _pre_sign_in_check(self, user: User) -> SignInResult | None:
        if not self.can_sign_in(user):
            return SignInResult.not_allowed()
        if self.user_manager.is_locked_out(user):
            logger.info("User {} is currently locked out", user.id)
            return SignInResult.locked_out()
        return None

    async def is_signed_in(self) -> bool:
        return await self._auth.authenticate(IdentityConstants.APPLICATION_SCHEME) is not None

    async def sign_in(
        self,
        user: User,
        is_persistent: bool,
        authentication_method: str | None = None,
    ) -> AuthTicket:
        return await self._auth.sign_in(
            IdentityConstants.APPLICATION_SCHEME,
            user.id,
            is_persistent=is_persistent,
            user_name=user.user_name,
            security_stamp=user.security_stamp,
            roles=await run_in_threadpool(self.user_manager.get_roles, user),
            authentication_method=authentication_method,
        )

    async def refresh_sign_in(self, user: User) -> None:
        """Re-issue the application cookie after the security stamp changed."""
        ticket = await self._auth.authenticate(IdentityConstants.APPLICATION_SCHEME)
        is_persistent = ticket.is_persistent if ticket is not None else False
        method = ticket.authentication_method if ticket is not None else None
        await self.sign_in(user, is_persistent, method)

    async def sign_out(self) -> None:
        await self._auth.sign_out(IdentityConstants.APPLICATION_SCHEME)
        await self._auth.sign_out(IdentityConstants.EXTERNAL_SCHEME)
        await self._auth.sign_out(IdentityConstants.TWO_FACTOR_USER_ID_SCHEME)

    async def password_sign_in(
        self,
        user_name: str,
        password: str,
        is_persistent: bool,
        lockout_on_failure: bool,
    ) -> SignInResult:
        user = await run_in_threadpool(self.user_manager.find_by_name, user_name)
        if user is None:
            return SignInResult.failed()

        error = self._pre_sign_in_check(user)
        if error is not None:
            return error

        # bcrypt and the user store both block, keep them off the event loop
        if await run_in_threadpool(self.user_manager.check_password, user, password):
            await run_in_threadpool(self.user_manager.reset_access_failed_count, user)
            if await self._requires_two_factor(user):
                await self._auth.sign_in(
                    IdentityConstants.TWO_FACTOR_USER_ID_SCHEME,
                    user.id,
                    properties={"is_persistent": is_persistent},
                )
                return SignInResult.two_factor_required()
            await self.sign_in(user, is_persistent, authentication_method="pwd")
            logger.info("User {} logged in", user.id)
            return SignInResult.success()

        if lockout_on_failure:
            await run_in_threadpool(self.user_manager.access_failed, user)
            if self.user_manager.is_locked_out(user):
                return SignInResult.locked_out()
        return SignInResult.failed()

    async def _requires_two_factor(self, user: User) -> bool:
        if not user.two_factor_enabled:
            return False
        if await run_in_threadpool(self.user_manager.get_authenticator_key, user) is None:
            return False
        return not await self.is_two_factor_client_remembered(user)

    # -- two-factor -------------------------------------------------------

    async def get_two_factor_authentication_user(self) -> User | None:
        ticket = await self._auth.authenticate(IdentityConstants.TWO_FACTOR_USER_ID_SCHEME)
        if ticket is None:
            return None
        return await run_in_threadpool(self.user_manager.find_by_id, ticket.user_id)

    async def is_two_factor_client_remembered(self, user: User) -> bool:
        ticket = await self._auth.authenticate(IdentityConstants.TWO_FACTOR_REMEMBER_ME_SCHEME)
        return (
            ticket is not None
            and ticket.user_id == user.id
            and ticket.security_stamp == user.security_stamp
        )

    async def remember_two_factor_client(self, user: User) -> None:
        await self._auth.sign_in(
            IdentityConstants.TWO_FACTOR_REMEMBER_ME_SCHEME,
            user.id,
            is_persistent=True,
            security_stamp=user.security_stamp,
        )

    async def forget_two_factor_client(self) -> None:
        await self._auth.sign_out(IdentityConstants.TWO_FACTOR_REMEMBER_ME_SCHEME)

    async def _complete_two_factor(
        self, user: User, is_persistent: bool, remember_client: bool, method: str
    ) -> SignInResult:
        await run_in_threadpool(self.user_manager.reset_access_failed_count, user)
        await self._auth.sign_out(IdentityConstants.TWO_FACTOR_USER_ID_SCHEME)
        if remember_client:
            await self.remember_two_factor_client(user)
        await self.sign_in(user, is_persistent, authentication_method=method)
        logger.info("User {} logged in with two-factor authentication", user.id)
        return SignInResult.success()

    async def two_factor_authenticator_sign_in(
        self, code: str, is_persistent: bool, remember_client: bool
    ) -> SignInResult:
        user = await self.get_two_factor_authentication_user()
        if user is None:
            return SignInResult.failed()
        if self.user_manager.is_locked_out(user):
            return SignInResult.locked_out()

        code = code.replace(" ", "").replace("-", "")
        if await run_in_threadpool(self.user_manager.verify_authenticator_code, user, code):
            return await self._complete_two_factor(user, is_persistent, remember_client, "mfa")

        await run_in_threadpool(self.user_manager.access_failed, user)
        if self.user_manager.is_locked_out(user):
            return SignInResult.locked_out()
        return SignInResult.failed()

    async def two_factor_recovery_code_sign_in(self, recovery_code: str) -> SignInResult:
        user = await self.get_two_factor_authentication_user()
        if user is None:
            return SignInResult.failed()
        if self.user_manager.is_locked_out(user):
            return SignInResult.locked_out()

        redeemed = await run_in_threadpool(
            self.user_manager.redeem_recovery_code, user, recovery_code
        )
        if redeemed.succeeded:
            return await self._complete_two_factor(user, False, False, "mfa")

        await run_in_threadpool(self.user_manager.access_failed, user)
        if self.user_manager.is_locked_out(user):
            return SignInResult.locked_out()
        return SignInResult.failed()

    # -- session validation -----------------------------------------------

    def validate_security_stamp(self, ticket: AuthTicket) -> User | None:
        """The ticket's user, if it still exists and its credentials are unchanged."""
        user = self.user_manager.find_by_id(ticket.user_id)
        if user is None or user.security_stamp != ticket.security_stamp:
            return None
        return user
