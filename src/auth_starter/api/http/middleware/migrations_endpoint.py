"""Development endpoint that applies pending migrations on demand."""

from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from src.auth_starter.core.exceptions import MigrationError
from src.auth_starter.core.services.registry import ServiceProvider
from src.auth_starter.runtime.migrations import MigrationRunner


class MigrationsEndPointMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        provider: ServiceProvider,
        path: str = "/ApplyDatabaseMigrations",
    ) -> None:
        super().__init__(app)
        self._provider = provider
        self.path = path

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or request.url.path != self.path:
            return await call_next(request)

        runner = self._provider.get(MigrationRunner)
        try:
            applied = await run_in_threadpool(runner.apply_pending)
        except MigrationError as e:
            logger.error("Applying migrations from the endpoint failed: {}", e)
            return PlainTextResponse(str(e), status_code=400)

        logger.info("Applied {} migration(s) from the migrations endpoint", len(applied))
        return Response(status_code=204)
