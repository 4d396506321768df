"""Process startup sequence.

``Starting -> ResolvingConfig -> RegisteringServices -> AssemblingPipeline ->
Migrating -> Serving``. A failure in any phase before ``Serving`` moves the
state to ``Terminated`` and the exception propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from fastapi import FastAPI
from loguru import logger

from src.auth_starter.api.http.app import create_app
from src.auth_starter.api.http.service_registration import register_application_services
from src.auth_starter.api.utils.app_startup import configure_logging
from src.auth_starter.core.services.registry import ServiceProvider, ServiceRegistry
from src.auth_starter.runtime.connection import (
    mask_connection_string,
    resolve_connection_string,
)
from src.auth_starter.runtime.context import AppContext, load_context
from src.auth_starter.runtime.migrations import MigrationRunner
from src.auth_starter.runtime.settings import EnvironmentVariables


class StartupPhase(str, Enum):
    STARTING = "Starting"
    RESOLVING_CONFIG = "ResolvingConfig"
    REGISTERING_SERVICES = "RegisteringServices"
    ASSEMBLING_PIPELINE = "AssemblingPipeline"
    MIGRATING = "Migrating"
    SERVING = "Serving"
    TERMINATED = "Terminated"


@dataclass
class StartupState:
    """Phases the process has gone through, oldest first."""

    history: list[StartupPhase] = field(default_factory=lambda: [StartupPhase.STARTING])
    context: AppContext | None = None
    provider: ServiceProvider | None = None
    applied_migrations: list[str] = field(default_factory=list)

    @property
    def phase(self) -> StartupPhase:
        return self.history[-1]

    def advance(self, phase: StartupPhase) -> None:
        logger.debug("Startup phase: {} -> {}", self.phase.value, phase.value)
        self.history.append(phase)


def apply_startup_migrations(provider: ServiceProvider) -> list[str]:
    """Apply pending migrations synchronously; any failure is fatal."""
    with provider.create_scope() as scope:
        return scope.get(MigrationRunner).apply_pending()


def bootstrap(
    settings: EnvironmentVariables | None = None,
    *,
    migrate: bool | None = None,
    state: StartupState | None = None,
) -> tuple[FastAPI, StartupState]:
    """Build a ready-to-serve application.

    Args:
        settings: Process settings; read from the environment when omitted.
        migrate: Overrides ``database.migrate_on_startup``.
        state: Records the phase history; a new one is created when omitted.

    Raises:
        ConfigurationError: The connection string is missing or malformed.
        MigrationError: Pending migrations could not be applied.
    """
    state = state or StartupState()
    try:
        state.advance(StartupPhase.RESOLVING_CONFIG)
        context = load_context(settings)
        state.context = context
        configure_logging(context)
        connection_string = resolve_connection_string(context.settings, context.config)
        logger.info("Database connection: {}", mask_connection_string(connection_string))

        state.advance(StartupPhase.REGISTERING_SERVICES)
        registry = register_application_services(
            ServiceRegistry(), context, connection_string
        )
        provider = registry.build_provider()
        state.provider = provider

        state.advance(StartupPhase.ASSEMBLING_PIPELINE)
        app = create_app(context, provider)

        state.advance(StartupPhase.MIGRATING)
        should_migrate = (
            context.config.database.migrate_on_startup if migrate is None else migrate
        )
        if should_migrate:
            state.applied_migrations = apply_startup_migrations(provider)
        else:
            logger.info("Startup migrations disabled")

        state.advance(StartupPhase.SERVING)
        return app, state
    except Exception as e:
        failed_phase = state.phase
        state.advance(StartupPhase.TERMINATED)
        logger.bind(phase=failed_phase.value, error_type=type(e).__name__).error(
            "startup.failed: {}", e
        )
        if state.provider is not None:
            state.provider.close()
        raise
