"""Anti-forgery protection for form submissions.

Every response carries a random anti-forgery cookie; pages embed a token
derived from it (HMAC with the signing key) in a hidden
``__RequestVerificationToken`` field. Unsafe requests must echo that token
in the form field or the ``X-CSRF-Token`` header.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from src.auth_starter.core.security import (
    generate_csrf_token,
    generate_secure_token,
    validate_csrf_token,
)
from src.auth_starter.runtime.config.config_data import SecurityConfig

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class AntiforgeryMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        secret: bytes,
        security: SecurityConfig,
        secure_cookies: bool = True,
    ) -> None:
        super().__init__(app)
        self._secret = secret
        self._cookie_name = security.antiforgery_cookie_name
        self._form_field = security.antiforgery_form_field
        self._header_name = security.antiforgery_header_name
        self._max_age_hours = security.antiforgery_token_max_age_hours
        self._secure = secure_cookies

    async def _submitted_token(self, request: Request) -> str | None:
        token = request.headers.get(self._header_name)
        if token:
            return token
        content_type = request.headers.get("content-type", "")
        if not content_type.startswith(FORM_CONTENT_TYPES):
            return None
        # Reading the body first keeps it available to the endpoint
        await request.body()
        form = await request.form()
        value = form.get(self._form_field)
        return value if isinstance(value, str) else None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cookie_token = request.cookies.get(self._cookie_name)

        if request.method not in SAFE_METHODS:
            submitted = await self._submitted_token(request)
            if not cookie_token or not validate_csrf_token(
                self._secret, cookie_token, submitted, self._max_age_hours
            ):
                logger.warning(
                    "Anti-forgery validation failed for {} {}",
                    request.method,
                    request.url.path,
                )
                return PlainTextResponse(
                    "A valid antiforgery token was not provided with the request.",
                    status_code=400,
                )

        issue_cookie = not cookie_token
        if issue_cookie:
            cookie_token = generate_secure_token()
        request.state.antiforgery_token = generate_csrf_token(self._secret, cookie_token)
        request.state.antiforgery_field = self._form_field

        response = await call_next(request)
        if issue_cookie:
            response.set_cookie(
                self._cookie_name,
                cookie_token,
                httponly=True,
                secure=self._secure,
                samesite="strict",
            )
        return response
