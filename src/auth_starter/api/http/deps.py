"""FastAPI dependency implementations.

Every dependency resolves from the request's service scope, which the
request scope middleware stores on ``request.state.services``.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import urlencode

from fastapi import Depends, Request
from sqlmodel import Session
from starlette.responses import HTMLResponse

from src.auth_starter.api.http.rendering import PageRenderer
from src.auth_starter.core.identity.accessors import (
    IdentityRedirectManager,
    IdentityUserAccessor,
    RedirectRequired,
)
from src.auth_starter.core.identity.auth_state import CascadingAuthenticationState
from src.auth_starter.core.identity.authentication import AuthenticationOptions
from src.auth_starter.core.identity.principal import AuthenticationState, Principal
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.services.email_sender import EmailSender
from src.auth_starter.core.services.registry import ServiceScope
from src.auth_starter.entities.core.user.entity import User


def get_services(request: Request) -> ServiceScope:
    """Get the service scope of the current request."""
    return request.state.services


def get_db_session(services: ServiceScope = Depends(get_services)) -> Session:
    """Get the database session of the current request."""
    return services.get(Session)


def get_renderer(services: ServiceScope = Depends(get_services)) -> PageRenderer:
    return services.get(PageRenderer)


def get_user_manager(services: ServiceScope = Depends(get_services)) -> UserManager:
    return services.get(UserManager)


def get_sign_in_manager(services: ServiceScope = Depends(get_services)) -> SignInManager:
    return services.get(SignInManager)


def get_email_sender(services: ServiceScope = Depends(get_services)) -> EmailSender:
    return services.get(EmailSender)


def get_redirect_manager(
    services: ServiceScope = Depends(get_services),
) -> IdentityRedirectManager:
    return services.get(IdentityRedirectManager)


async def get_authentication_state(
    services: ServiceScope = Depends(get_services),
) -> AuthenticationState:
    """Authentication state of the request, revalidated when due."""
    return await services.get(CascadingAuthenticationState).get()


def get_authentication_options(
    services: ServiceScope = Depends(get_services),
) -> AuthenticationOptions:
    return services.get(AuthenticationOptions)


def _challenge(request: Request, path: str) -> RedirectRequired:
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectRequired(f"{path}?{urlencode({'ReturnUrl': target})}", status_code=302)


async def require_authenticated(
    request: Request,
    state: AuthenticationState = Depends(get_authentication_state),
    options: AuthenticationOptions = Depends(get_authentication_options),
) -> Principal:
    """Route guard: anonymous users are sent to the login page."""
    if not state.user.is_authenticated:
        raise _challenge(request, options.login_path)
    return state.user


def require_role(*roles: str) -> Callable[..., Coroutine[Any, Any, Principal]]:
    """Route guard for users in any of ``roles``.

    Anonymous users are sent to the login page; signed-in users without one of
    the roles get the access denied page.
    """

    async def guard(
        request: Request,
        user: Principal = Depends(require_authenticated),
        options: AuthenticationOptions = Depends(get_authentication_options),
    ) -> Principal:
        if not any(user.is_in_role(role) for role in roles):
            raise _challenge(request, options.access_denied_path)
        return user

    return guard


async def get_required_user(
    principal: Principal = Depends(require_authenticated),
    services: ServiceScope = Depends(get_services),
) -> User:
    """The signed-in user loaded from the database."""
    return await services.get(IdentityUserAccessor).get_required_user()


class PageResponder:
    """Renders a template with the values every page layout needs."""

    def __init__(
        self,
        request: Request,
        renderer: PageRenderer,
        state: AuthenticationState,
        redirect_manager: IdentityRedirectManager,
    ) -> None:
        self.request = request
        self._renderer = renderer
        self._state = state
        self._redirects = redirect_manager

    def __call__(self, template_name: str, status_code: int = 200, **context: Any) -> HTMLResponse:
        request_state = self.request.state
        if "status_message" not in context:
            context["status_message"] = self._redirects.take_status_message()
        return self._renderer.response(
            template_name,
            status_code=status_code,
            current_user=self._state.user,
            current_path=self.request.url.path,
            antiforgery_token=getattr(request_state, "antiforgery_token", ""),
            antiforgery_field=getattr(
                request_state, "antiforgery_field", "__RequestVerificationToken"
            ),
            **context,
        )


async def get_page(
    request: Request,
    renderer: PageRenderer = Depends(get_renderer),
    state: AuthenticationState = Depends(get_authentication_state),
    redirect_manager: IdentityRedirectManager = Depends(get_redirect_manager),
) -> PageResponder:
    return PageResponder(request, renderer, state, redirect_manager)
