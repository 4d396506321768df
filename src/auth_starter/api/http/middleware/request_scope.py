"""One service scope per request.

The scope is stored on ``request.state.services``; cookies queued by
scoped services during the request are written to the response before the
scope closes.
"""

from typing import Literal

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.auth_starter.core.identity.authentication import RequestContext
from src.auth_starter.core.services.registry import ServiceProvider


class RequestScopeMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        provider: ServiceProvider,
        secure_cookies: bool = True,
        samesite: Literal["lax", "strict", "none"] = "lax",
    ) -> None:
        super().__init__(app)
        self._provider = provider
        self._secure = secure_cookies
        self._samesite = samesite

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        with self._provider.create_scope() as scope:
            request_context = scope.get(RequestContext)
            request_context.bind(request)
            request.state.services = scope

            response = await call_next(request)
            request_context.apply(response, secure=self._secure, samesite=self._samesite)
            return response
