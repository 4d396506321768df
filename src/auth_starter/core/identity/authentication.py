"""Cookie authentication backed by server-side tickets.

Each scheme has its own cookie holding a ticket id; the ticket itself lives
in the session storage. Cookie writes are queued on the per-request
:class:`RequestContext` and applied to the outgoing response by the request
scope middleware.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger
from starlette.requests import Request
from starlette.responses import Response

from src.auth_starter.core.identity.constants import IdentityConstants
from src.auth_starter.core.models.session import AuthTicket
from src.auth_starter.core.storage.session_storage import SessionStorage


@dataclass
class CookieOperation:
    name: str
    value: str | None
    max_age: int | None = None
    httponly: bool = True
    path: str = "/"


class RequestContext:
    """Per-request access to the incoming request and pending cookie writes."""

    def __init__(self) -> None:
        self._request: Request | None = None
        self._cookies: list[CookieOperation] = []

    def bind(self, request: Request) -> None:
        self._request = request

    @property
    def request(self) -> Request:
        if self._request is None:
            raise RuntimeError("No request is bound to this service scope")
        return self._request

    @property
    def has_request(self) -> bool:
        return self._request is not None

    def get_cookie(self, name: str) -> str | None:
        # A cookie written earlier in this request wins over the incoming one
        for op in reversed(self._cookies):
            if op.name == name:
                return op.value
        if self._request is None:
            return None
        return self._request.cookies.get(name)

    def set_cookie(
        self, name: str, value: str, max_age: int | None = None, httponly: bool = True
    ) -> None:
        self._cookies.append(CookieOperation(name, value, max_age, httponly))

    def delete_cookie(self, name: str) -> None:
        self._cookies.append(CookieOperation(name, None))

    def apply(
        self,
        response: Response,
        secure: bool,
        samesite: Literal["lax", "strict", "none"] = "lax",
    ) -> None:
        # Only the last write to each cookie reaches the response
        latest = {op.name: op for op in self._cookies}
        for op in latest.values():
            if op.value is None:
                response.delete_cookie(op.name, path=op.path, secure=secure, samesite=samesite)
            else:
                response.set_cookie(
                    op.name,
                    op.value,
                    max_age=op.max_age,
                    path=op.path,
                    secure=secure,
                    httponly=op.httponly,
                    samesite=samesite,
                )
        self._cookies.clear()


@dataclass(frozen=True)
class CookieSchemeOptions:
    cookie_name: str
    ttl_seconds: int
    sliding_expiration: bool = True


@dataclass
class AuthenticationOptions:
    """Registered authentication schemes and their defaults."""

    default_scheme: str = IdentityConstants.APPLICATION_SCHEME
    default_sign_in_scheme: str = IdentityConstants.EXTERNAL_SCHEME
    login_path: str = "/Account/Login"
    logout_path: str = "/Account/Logout"
    access_denied_path: str = "/Account/AccessDenied"
    schemes: dict[str, CookieSchemeOptions] = field(default_factory=dict)

    def add_cookie(
        self, scheme: str, ttl_seconds: int, sliding_expiration: bool = True
    ) -> AuthenticationOptions:
        self.schemes[scheme] = CookieSchemeOptions(
            cookie_name=IdentityConstants.cookie_name(scheme),
            ttl_seconds=ttl_seconds,
            sliding_expiration=sliding_expiration,
        )
        return self

    def add_identity_cookies(
        self, session_max_age: int, two_factor_seconds: int
    ) -> AuthenticationOptions:
        """Application, external and two-factor cookie schemes."""
        self.add_cookie(IdentityConstants.APPLICATION_SCHEME, session_max_age)
        self.add_cookie(IdentityConstants.EXTERNAL_SCHEME, two_factor_seconds, False)
        self.add_cookie(IdentityConstants.TWO_FACTOR_USER_ID_SCHEME, two_factor_seconds, False)
        self.add_cookie(IdentityConstants.TWO_FACTOR_REMEMBER_ME_SCHEME, session_max_age)
        return self

    def scheme(self, name: str | None) -> CookieSchemeOptions:
        name = name or self.default_scheme
        try:
            return self.schemes[name]
        except KeyError:
            raise ValueError(f"No authentication scheme registered with name '{name}'") from None


class AuthenticationService:
    """Issues, reads and revokes authentication tickets for a request."""

    def __init__(
        self,
        storage: SessionStorage,
        request_context: RequestContext,
        options: AuthenticationOptions,
    ) -> None:
        self._storage = storage
        self._context = request_context
        self._options = options

    @property
    def options(self) -> AuthenticationOptions:
        return self._options

    @staticmethod
    def _key(scheme: str, ticket_id: str) -> str:
        return f"{scheme}:{ticket_id}"

    async def authenticate(self, scheme: str | None = None) -> AuthTicket | None:
        scheme = scheme or self._options.default_scheme
        scheme_options = self._options.scheme(scheme)
        ticket_id = self._context.get_cookie(scheme_options.cookie_name)
        if not ticket_id:
            return None
        ticket = await self._storage.get(self._key(scheme, ticket_id), AuthTicket)
        if ticket is None or ticket.is_expired() or ticket.scheme != scheme:
            return None
        if scheme_options.sliding_expiration and ticket.renew(scheme_options.ttl_seconds):
            await self._storage.set(
                self._key(scheme, ticket.id), ticket, scheme_options.ttl_seconds
            )
            self._context.set_cookie(
                scheme_options.cookie_name,
                ticket.id,
                max_age=scheme_options.ttl_seconds if ticket.is_persistent else None,
            )
            logger.debug("Renewed {} ticket for user {}", scheme, ticket.user_id)
        return ticket

    async def sign_in(
        self,
        scheme: str | None,
        user_id: str,
        is_persistent: bool = False,
        **ticket_fields: Any,
    ) -> AuthTicket:
        scheme = scheme or self._options.default_sign_in_scheme
        scheme_options = self._options.scheme(scheme)

        # Replace any ticket already issued under this scheme
        await self.sign_out(scheme)

        ticket = AuthTicket.create(
            session_id=secrets.token_urlsafe(32),
            scheme=scheme,
            user_id=user_id,
            ttl_seconds=scheme_options.ttl_seconds,
            is_persistent=is_persistent,
            **ticket_fields,
        )
        await self._storage.set(self._key(scheme, ticket.id), ticket, scheme_options.ttl_seconds)
        self._context.set_cookie(
            scheme_options.cookie_name,
            ticket.id,
            max_age=scheme_options.ttl_seconds if is_persistent else None,
        )
        logger.debug("Signed in user {} with scheme {}", user_id, scheme)
        return ticket

    async def refresh(self, ticket: AuthTicket) -> None:
        """Persist changes to a ticket (e.g. after revalidation)."""
        await self._storage.set(self._key(ticket.scheme, ticket.id), ticket, ticket.ttl_seconds())

    async def sign_out(self, scheme: str | None = None) -> None:
        scheme = scheme or self._options.default_scheme
        scheme_options = self._options.scheme(scheme)
        ticket_id = self._context.get_cookie(scheme_options.cookie_name)
        if ticket_id:
            await self._storage.delete(self._key(scheme, ticket_id))
            self._context.delete_cookie(scheme_options.cookie_name)
