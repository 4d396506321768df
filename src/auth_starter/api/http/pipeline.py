"""HTTP pipeline assembly.

Stages are installed in a fixed order, first stage outermost. The names of
the installed stages are recorded on ``app.state.pipeline`` so the order can
be inspected at runtime and in tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.exception_handlers import http_exception_handler
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.staticfiles import StaticFiles

from src.auth_starter.api.http.middleware import (
    AntiforgeryMiddleware,
    DatabaseDeveloperPageExceptionFilter,
    DatabaseErrorPageMiddleware,
    ExceptionHandlerMiddleware,
    HstsMiddleware,
    HttpsRedirectionMiddleware,
    MigrationsEndPointMiddleware,
    RequestLoggingMiddleware,
    RequestScopeMiddleware,
)
from src.auth_starter.api.http.rendering import PageRenderer
from src.auth_starter.api.http.routers.account import router as account_router
from src.auth_starter.api.http.routers.health import router as health_router
from src.auth_starter.api.http.routers.pages import router as pages_router
from src.auth_starter.core.identity.accessors import RedirectRequired
from src.auth_starter.core.security import SigningKey
from src.auth_starter.core.services.registry import ServiceProvider
from src.auth_starter.runtime.context import AppContext

STATIC_DIR = Path(__file__).resolve().parent.parent.parent / "static"


async def _redirect_required_handler(request: Request, exc: RedirectRequired) -> Response:
    return RedirectResponse(exc.url, status_code=exc.status_code)


def _not_found_handler(renderer: PageRenderer):
    async def handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        return renderer.response("pages/not_found.html", status_code=404)

    return handler


def assemble_pipeline(
    app: FastAPI, context: AppContext, provider: ServiceProvider
) -> list[str]:
    """Install the middleware stages and endpoints onto ``app``.

    Returns:
        Names of the installed stages, outermost first.
    """
    security = context.config.security
    environment = context.environment
    renderer = provider.get(PageRenderer)

    stages: list[str] = []
    middleware: list[tuple[Any, dict[str, Any]]] = []

    def use(name: str, cls: Any, **options: Any) -> None:
        stages.append(name)
        middleware.append((cls, options))

    # 0. Request logging and the per-request service scope
    use("request_logging", RequestLoggingMiddleware)
    use(
        "request_scope",
        RequestScopeMiddleware,
        provider=provider,
        secure_cookies=context.secure_cookies,
        samesite=security.cookie_samesite,
    )

    if environment.is_development:
        # 1. Migrations endpoint and database diagnostics
        use("migrations_endpoint", MigrationsEndPointMiddleware, provider=provider)
        use(
            "database_error_page",
            DatabaseErrorPageMiddleware,
            exception_filter=provider.get(DatabaseDeveloperPageExceptionFilter),
            renderer=renderer,
        )
    else:
        # 2. Error page in a fresh scope, then HSTS
        use(
            "exception_handler",
            ExceptionHandlerMiddleware,
            provider=provider,
            error_path="/Error",
            create_scope_for_errors=True,
        )
        use("hsts", HstsMiddleware, security=security)

    # 3. HTTPS redirection
    use("https_redirection", HttpsRedirectionMiddleware, security=security)

    # 4. Anti-forgery
    use(
        "antiforgery",
        AntiforgeryMiddleware,
        secret=provider.get(SigningKey).value,
        security=security,
        secure_cookies=context.secure_cookies,
    )

    # add_middleware wraps the existing stack, so the first stage goes in last
    for cls, options in reversed(middleware):
        app.add_middleware(cls, **options)

    # 5. Static assets
    static_dir = Path(context.config.app.static_dir) if context.config.app.static_dir else STATIC_DIR
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    stages.append("static_assets")

    # 6. Pages
    app.include_router(pages_router)
    app.add_exception_handler(RedirectRequired, _redirect_required_handler)
    app.add_exception_handler(StarletteHTTPException, _not_found_handler(renderer))
    stages.append("pages")

    # 7. Identity account endpoints
    app.include_router(account_router, prefix="/Account")
    stages.append("account_endpoints")

    # 8. Health
    app.include_router(health_router)
    stages.append("health")

    app.state.pipeline = stages
    logger.info(
        "HTTP pipeline assembled for {} environment: {}",
        environment.value,
        " -> ".join(stages),
    )
    return stages
