from alembic import context
from sqlalchemy import create_engine, pool
from sqlmodel import SQLModel

# Import the tables so they are registered on the metadata for autogenerate
from src.auth_starter.entities import (  # noqa: F401
    RoleClaimTable,
    RoleTable,
    UserClaimTable,
    UserLoginTable,
    UserRoleTable,
    UserTable,
    UserTokenTable,
)

# this is the Alembic Config object
config = context.config

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL for the configured URL."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    The migration runner hands over an open connection through
    ``config.attributes["connection"]``; the URL option is used otherwise.
    """
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with_connection(connection)
        return

    connectable = create_engine(
        config.get_main_option("sqlalchemy.url"), poolclass=pool.NullPool
    )
    with connectable.connect() as connection:
        _run_with_connection(connection)


def _run_with_connection(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
