"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from src.auth_starter.api.http.pipeline import assemble_pipeline
from src.auth_starter.core.services.registry import ServiceProvider
from src.auth_starter.core.storage.session_storage import (
    RedisSessionStorage,
    SessionStorage,
)
from src.auth_starter.runtime.context import AppContext


async def startup(app: FastAPI) -> None:
    provider: ServiceProvider = app.state.services_provider
    context: AppContext = app.state.context
    logger.info("Starting up application in {} environment", context.environment.value)

    storage = provider.get(SessionStorage)
    if isinstance(storage, RedisSessionStorage) and not await storage.ping():
        logger.warning("Redis session storage is not reachable; sign-in will fail until it is")


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    provider: ServiceProvider = app.state.services_provider

    storage = provider.get(SessionStorage)
    removed = await storage.cleanup_expired()
    if removed:
        logger.info("Purged {} expired authentication tickets", removed)
    if isinstance(storage, RedisSessionStorage):
        await storage.aclose()

    provider.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Allow FastAPI to run startup/shutdown routines once per process
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


def create_app(context: AppContext, provider: ServiceProvider) -> FastAPI:
    """Build the application around an already-built service provider."""
    app = FastAPI(
        title=context.config.app.name,
        lifespan=lifespan,
        debug=context.environment.is_development,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context
    app.state.services_provider = provider

    assemble_pipeline(app, context, provider)
    return app
