"""Authentication state for page rendering.

The revalidating provider re-checks the user's security stamp against the
database once the revalidation interval has elapsed, so that a password
change or account deletion ends sessions opened elsewhere.
"""

from __future__ import annotations

from loguru import logger
from starlette.concurrency import run_in_threadpool

from src.auth_starter.core.identity.authentication import AuthenticationService
from src.auth_starter.core.identity.principal import AuthenticationState, Principal
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.models.session import AuthTicket


class AuthenticationStateProvider:
    """Reads the authenticated user from the default cookie scheme."""

    def __init__(self, authentication: AuthenticationService) -> None:
        self._auth = authentication

    @staticmethod
    def _principal(ticket: AuthTicket) -> Principal:
        return Principal(
            user_id=ticket.user_id,
            user_name=ticket.user_name,
            roles=tuple(ticket.roles),
            authentication_scheme=ticket.scheme,
        )

    async def get_authentication_state(self) -> AuthenticationState:
        ticket = await self._auth.authenticate()
        if ticket is None:
            return AuthenticationState.anonymous()
        return AuthenticationState(self._principal(ticket))


class RevalidatingAuthenticationStateProvider(AuthenticationStateProvider):
    def __init__(
        self,
        authentication: AuthenticationService,
        sign_in_manager: SignInManager,
        revalidation_interval_seconds: int = 1800,
    ) -> None:
        super().__init__(authentication)
        self._sign_in = sign_in_manager
        self.revalidation_interval = revalidation_interval_seconds

    async def get_authentication_state(self) -> AuthenticationState:
        ticket = await self._auth.authenticate()
        if ticket is None:
            return AuthenticationState.anonymous()

        if ticket.needs_revalidation(self.revalidation_interval):
            user = await run_in_threadpool(self._sign_in.validate_security_stamp, ticket)
            if user is None:
                logger.info("Security stamp for user {} no longer valid; signing out", ticket.user_id)
                await self._sign_in.sign_out()
                return AuthenticationState.anonymous()
            ticket.roles = await run_in_threadpool(self._sign_in.user_manager.get_roles, user)
            ticket.user_name = user.user_name
            ticket.mark_validated()
            await self._auth.refresh(ticket)

        return AuthenticationState(self._principal(ticket))


class CascadingAuthenticationState:
    """Per-request cache of the authentication state shared by all pages."""

    def __init__(self, provider: AuthenticationStateProvider) -> None:
        self._provider = provider
        self._state: AuthenticationState | None = None

    async def get(self) -> AuthenticationState:
        if self._state is None:
            self._state = await self._provider.get_authentication_state()
        return self._state

    def reset(self) -> None:
        self._state = None
