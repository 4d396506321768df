"""Production exception handler.

Unhandled exceptions are logged and the request is re-executed as
``GET /Error`` in a fresh service scope, so the error page never sees state
left behind by the failed request. The re-executed response keeps status 500.
"""

from __future__ import annotations

from loguru import logger
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.auth_starter.core.identity.authentication import RequestContext
from src.auth_starter.core.services.registry import ServiceProvider


class ExceptionHandlerMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        provider: ServiceProvider,
        error_path: str = "/Error",
        create_scope_for_errors: bool = True,
    ) -> None:
        self.app = app
        self._provider = provider
        self.error_path = error_path
        self.create_scope_for_errors = create_scope_for_errors

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            logger.opt(exception=exc).error(
                "Unhandled exception while handling {} {}",
                scope.get("method"),
                scope.get("path"),
            )
            await self._reexecute(scope, send)

    async def _reexecute(self, scope: Scope, send: Send) -> None:
        error_scope: Scope = dict(scope)
        error_scope.update(
            method="GET",
            path=self.error_path,
            raw_path=self.error_path.encode("latin-1"),
            query_string=b"",
            state=dict(scope.get("state") or {}),
        )

        async def receive_empty() -> Message:
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send_as_error(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "status": 500}
            await send(message)

        if not self.create_scope_for_errors:
            await self.app(error_scope, receive_empty, send_as_error)
            return

        with self._provider.create_scope() as services:
            services.get(RequestContext).bind(Request(error_scope))
            error_scope["state"]["services"] = services
            await self.app(error_scope, receive_empty, send_as_error)
