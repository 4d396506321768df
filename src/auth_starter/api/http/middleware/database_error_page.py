"""Development diagnostics for database failures.

When a request fails with a database error, the page lists the exception
together with any migrations that have not been applied, and offers a button
that posts to the migrations endpoint.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.auth_starter.api.http.rendering import PageRenderer
from src.auth_starter.core.exceptions import MigrationError
from src.auth_starter.runtime.migrations import MigrationRunner

MIGRATIONS_ENDPOINT = "/ApplyDatabaseMigrations"


class DatabaseDeveloperPageExceptionFilter:
    """Turns database exceptions into diagnostic details."""

    def __init__(self, migration_runner: MigrationRunner) -> None:
        self._runner = migration_runner

    def describe(self, exc: BaseException) -> dict[str, Any] | None:
        """Diagnostic details for ``exc``, or None if it is not a database error."""
        if not isinstance(exc, SQLAlchemyError):
            return None
        try:
            pending = self._runner.pending_revisions()
        except MigrationError as e:
            logger.warning("Could not list pending migrations: {}", e)
            pending = []
        return {
            "error_type": type(exc).__name__,
            "error": str(exc),
            "pending_migrations": pending,
            "migrations_endpoint": MIGRATIONS_ENDPOINT,
        }


class DatabaseErrorPageMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        exception_filter: DatabaseDeveloperPageExceptionFilter,
        renderer: PageRenderer,
    ) -> None:
        super().__init__(app)
        self._filter = exception_filter
        self._renderer = renderer

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except SQLAlchemyError as exc:
            details = await run_in_threadpool(self._filter.describe, exc)
            logger.exception("Database error while handling {}", request.url.path)
            return self._renderer.response(
                "pages/database_error.html", status_code=500, **(details or {})
            )
