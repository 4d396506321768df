"""Redirect plain HTTP requests to HTTPS."""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from src.auth_starter.runtime.config.config_data import SecurityConfig


def effective_scheme(request: Request, trust_forwarded_proto: bool = True) -> str:
    """Scheme the client used, looking through a TLS-terminating proxy."""
    if trust_forwarded_proto:
        forwarded = request.headers.get("x-forwarded-proto")
        if forwarded:
            return forwarded.split(",")[0].strip().lower()
    return request.url.scheme


class HttpsRedirectionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, security: SecurityConfig, status_code: int = 307) -> None:
        super().__init__(app)
        self.https_port = security.https_port
        self.status_code = status_code
        self._trust_forwarded = security.trust_forwarded_proto
        self._warned = False

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if effective_scheme(request, self._trust_forwarded) == "https":
            return await call_next(request)

        if self.https_port is None:
            if not self._warned:
                logger.warning("Failed to determine the https port for redirect.")
                self._warned = True
            return await call_next(request)

        netloc = request.url.hostname or "localhost"
        if self.https_port != 443:
            netloc = f"{netloc}:{self.https_port}"
        url = request.url.replace(scheme="https", netloc=netloc)
        return RedirectResponse(str(url), status_code=self.status_code)
