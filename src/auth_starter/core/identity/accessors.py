"""Helpers used by the account pages."""

from __future__ import annotations

from urllib.parse import urlencode

from starlette.concurrency import run_in_threadpool

from src.auth_starter.core.identity.auth_state import CascadingAuthenticationState
from src.auth_starter.core.identity.authentication import RequestContext
from src.auth_starter.core.identity.constants import IdentityConstants
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.security import sanitize_return_url
from src.auth_starter.entities.core.user.entity import User


class RedirectRequired(Exception):
    """Raised by page handlers to end the request with a redirect."""

    def __init__(self, url: str, status_code: int = 303):
        super().__init__(url)
        self.url = url
        self.status_code = status_code


class IdentityRedirectManager:
    STATUS_COOKIE = IdentityConstants.STATUS_MESSAGE_COOKIE
    STATUS_COOKIE_MAX_AGE = 5

    def __init__(self, request_context: RequestContext) -> None:
        self._context = request_context

    def redirect_to(self, uri: str | None, query: dict[str, str] | None = None) -> RedirectRequired:
        """Build the redirect for ``uri``; off-site targets become ``/``."""
        url = sanitize_return_url(uri)
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(query)}"
        return RedirectRequired(url)

    def redirect_to_with_status(self, uri: str, message: str) -> RedirectRequired:
        self._context.set_cookie(self.STATUS_COOKIE, message, max_age=self.STATUS_COOKIE_MAX_AGE)
        return self.redirect_to(uri)

    def redirect_to_current_page(self) -> RedirectRequired:
        return self.redirect_to(self._context.request.url.path)

    def redirect_to_current_page_with_status(self, message: str) -> RedirectRequired:
        return self.redirect_to_with_status(self._context.request.url.path, message)

    def take_status_message(self) -> str | None:
        """Read the one-shot status message and clear its cookie."""
        message = self._context.get_cookie(self.STATUS_COOKIE)
        if message:
            self._context.delete_cookie(self.STATUS_COOKIE)
        return message or None


class IdentityUserAccessor:
    def __init__(
        self,
        user_manager: UserManager,
        redirect_manager: IdentityRedirectManager,
        auth_state: CascadingAuthenticationState,
    ) -> None:
        self._users = user_manager
        self._redirect = redirect_manager
        self._auth_state = auth_state

    async def get_required_user(self) -> User:
        state = await self._auth_state.get()
        user_id = state.user.user_id
        user = await run_in_threadpool(self._users.find_by_id, user_id) if user_id else None
        if user is None:
            raise self._redirect.redirect_to_with_status(
                "/Account/InvalidUser",
                f"Error: Unable to load user with ID '{user_id}'.",
            )
        return user
