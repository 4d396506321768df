"""HTTP Strict Transport Security header for production."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.auth_starter.api.http.middleware.https_redirection import effective_scheme
from src.auth_starter.runtime.config.config_data import SecurityConfig

# Browsers would pin these for every local project
EXCLUDED_HOSTS = frozenset({"localhost", "127.0.0.1", "[::1]"})


def hsts_header_value(security: SecurityConfig) -> str:
    value = f"max-age={security.hsts_max_age}"
    if security.hsts_include_subdomains:
        value += "; includeSubDomains"
    if security.hsts_preload:
        value += "; preload"
    return value


class HstsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, security: SecurityConfig) -> None:
        super().__init__(app)
        self._header = hsts_header_value(security)
        self._trust_forwarded = security.trust_forwarded_proto

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if (
            effective_scheme(request, self._trust_forwarded) == "https"
            and request.url.hostname not in EXCLUDED_HOSTS
        ):
            response.headers.setdefault("Strict-Transport-Security", self._header)
        return response
