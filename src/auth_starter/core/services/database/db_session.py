"""Database engine and session factory used across the application."""

from typing import Any

from loguru import logger
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from src.auth_starter.runtime.config.config_data import DatabaseConfig
from src.auth_starter.runtime.environment import Environment


class DbSessionService:
    def __init__(
        self,
        url: URL,
        db_config: DatabaseConfig,
        environment: Environment = Environment.PRODUCTION,
    ):
        """Initialize the shared database engine and session factory."""

        logger.info("Setting up database engine and session factory")
        self._url = url
        self._environment = environment

        logger.info(
            "Initializing database engine for {} ({} environment)",
            url.render_as_string(hide_password=True),
            environment.value,
        )
        self._engine = create_engine(url, **self._get_engine_kwargs(db_config))

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def url(self) -> URL:
        return self._url

    @property
    def dialect(self) -> str:
        return self._url.get_backend_name()

    def _get_engine_kwargs(self, db_config: DatabaseConfig) -> dict[str, Any]:
        """Get database-specific engine arguments."""
        if self.dialect == "sqlite":
            kwargs: dict[str, Any] = {
                "echo": db_config.echo,
                "connect_args": {
                    "check_same_thread": False,
                    "timeout": 20,  # Lock timeout
                },
            }
            if self._url.database in (None, "", ":memory:"):
                # One shared connection so every session sees the same in-memory database
                kwargs["poolclass"] = StaticPool

            if self._environment is Environment.PRODUCTION:
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )
            return kwargs

        return {
            # Connection pool settings
            "pool_size": db_config.pool_size,
            "max_overflow": db_config.max_overflow,
            "pool_timeout": db_config.pool_timeout,
            "pool_recycle": db_config.pool_recycle,
            "pool_pre_ping": True,  # Validate connections before use
            "echo": db_config.echo,
            "connect_args": {
                # Application name for connection tracking
                "application_name": f"{self._environment.value}_auth_starter",
                "connect_timeout": 30,
            },
        }

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,  # Prevent lazy loading issues
            autoflush=True,
        )

    def dispose(self) -> None:
        self._engine.dispose()
