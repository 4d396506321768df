"""Alembic-backed schema migration runner.

Used at boot (blocking, before the server accepts traffic), by the
development-only migrations endpoint and by the ``migrate`` CLI command.
"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from src.auth_starter.core.exceptions import MigrationError
from src.auth_starter.core.services.database.db_session import DbSessionService

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def _as_tuple(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class MigrationRunner:
    """Applies pending Alembic revisions against the application database."""

    def __init__(
        self,
        database_service: DbSessionService,
        lock_id: int | None = None,
        script_location: Path = MIGRATIONS_DIR,
    ) -> None:
        self._db = database_service
        self._lock_id = lock_id
        self._script_location = script_location

    def _alembic_config(self, connection: Connection | None = None) -> Config:
        cfg = Config()
        cfg.set_main_option("script_location", str(self._script_location))
        if connection is not None:
            cfg.attributes["connection"] = connection
        return cfg

    def _script(self) -> ScriptDirectory:
        return ScriptDirectory.from_config(self._alembic_config())

    def current_revisions(self) -> tuple[str, ...]:
        """Revisions currently recorded in the database."""
        with self._db.engine.connect() as connection:
            context = MigrationContext.configure(connection)
            return tuple(context.get_current_heads())

    def pending_revisions(self) -> list[str]:
        """Revisions that ``apply_pending`` would apply, oldest first.

        Raises:
            MigrationError: If the applied revisions cannot be read.
        """
        try:
            return self._pending_revisions()
        except SQLAlchemyError as e:
            logger.error("Reading migration state failed: {}: {}", type(e).__name__, e)
            raise MigrationError(f"Failed to read migration state: {e}") from e

    def _pending_revisions(self) -> list[str]:
        script = self._script()
        applied: set[str] = set()
        stack = list(self.current_revisions())
        while stack:
            revision_id = stack.pop()
            if revision_id in applied:
                continue
            applied.add(revision_id)
            revision = script.get_revision(revision_id)
            if revision is not None:
                stack.extend(_as_tuple(revision.down_revision))

        ordered = reversed(list(script.walk_revisions()))
        return [rev.revision for rev in ordered if rev.revision not in applied]

    def apply_pending(self) -> list[str]:
        """Upgrade the database to the latest revision.

        On PostgreSQL the upgrade runs under a transaction-scoped advisory lock
        so that instances starting together apply migrations one at a time.

        Returns:
            The revisions that were pending before the upgrade.

        Raises:
            MigrationError: If the database is unreachable or a revision fails.
        """
        try:
            pending = self._pending_revisions()
            if not pending:
                logger.info("Database schema is up to date")
                return []

            logger.info("Applying {} pending migration(s): {}", len(pending), pending)
            with self._db.engine.begin() as connection:
                if connection.dialect.name == "postgresql" and self._lock_id is not None:
                    logger.info("Waiting for migration lock {}", self._lock_id)
                    connection.execute(
                        text("SELECT pg_advisory_xact_lock(:lock_id)"),
                        {"lock_id": self._lock_id},
                    )
                command.upgrade(self._alembic_config(connection), "head")
        except Exception as e:
            logger.error("Database migration failed: {}: {}", type(e).__name__, e)
            raise MigrationError(f"Failed to apply database migrations: {e}") from e

        logger.info("Database migrated to head")
        return pending
