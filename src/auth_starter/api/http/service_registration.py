"""Registration of every application service into the container.

The order below is the order services are added to the registry; nothing is
instantiated here. Singletons are built lazily on first resolution and scoped
services once per request scope.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlmodel import Session

from src.auth_starter.api.http.middleware.database_error_page import (
    DatabaseDeveloperPageExceptionFilter,
)
from src.auth_starter.api.http.rendering import PageRenderer
from src.auth_starter.core.identity.accessors import (
    IdentityRedirectManager,
    IdentityUserAccessor,
)
from src.auth_starter.core.identity.auth_state import (
    AuthenticationStateProvider,
    CascadingAuthenticationState,
    RevalidatingAuthenticationStateProvider,
)
from src.auth_starter.core.identity.authentication import (
    AuthenticationOptions,
    AuthenticationService,
    RequestContext,
)
from src.auth_starter.core.identity.password_hasher import PasswordHasher
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.identity.tokens import TokenProviders
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.security import SigningKey
from src.auth_starter.core.services.database.db_session import DbSessionService
from src.auth_starter.core.services.email_sender import EmailSender, NoOpEmailSender
from src.auth_starter.core.services.registry import ServiceRegistry
from src.auth_starter.core.storage.session_storage import (
    SessionStorage,
    create_session_storage,
)
from src.auth_starter.runtime.connection import (
    database_url_from_connection_string,
    resolve_connection_string,
)
from src.auth_starter.runtime.context import AppContext
from src.auth_starter.runtime.migrations import MigrationRunner


def register_application_services(
    registry: ServiceRegistry,
    context: AppContext,
    connection_string: str | None = None,
) -> ServiceRegistry:
    """Register the page, identity and database services.

    The connection string is resolved here unless the caller already did, so
    a missing or malformed database configuration fails registration before
    anything is served.

    Raises:
        MissingConnectionStringError: No connection string is available.
        ConnectionStringError: ``DATABASE_URL_POSTGRESQL`` is malformed.
    """
    config = context.config
    if connection_string is None:
        connection_string = resolve_connection_string(context.settings, config)
    database_url = database_url_from_connection_string(connection_string)

    # 1. Page rendering with interactive server mode
    templates_dir = Path(config.app.templates_dir) if config.app.templates_dir else None
    registry.add_singleton(
        PageRenderer,
        lambda sp: PageRenderer(
            templates_dir, app_name=config.app.name, interactive_server=True
        ),
    )

    # 2. Authentication state shared with every page of a request
    registry.add_scoped(
        CascadingAuthenticationState,
        lambda sp: CascadingAuthenticationState(sp.get(AuthenticationStateProvider)),
    )

    # 3. Account page helpers
    registry.add_scoped(
        IdentityUserAccessor,
        lambda sp: IdentityUserAccessor(
            sp.get(UserManager),
            sp.get(IdentityRedirectManager),
            sp.get(CascadingAuthenticationState),
        ),
    )
    registry.add_scoped(
        IdentityRedirectManager,
        lambda sp: IdentityRedirectManager(sp.get(RequestContext)),
    )

    # 4. Authentication state provider revalidating the security stamp
    registry.add_scoped(
        AuthenticationStateProvider,
        lambda sp: RevalidatingAuthenticationStateProvider(
            sp.get(AuthenticationService),
            sp.get(SignInManager),
            config.identity.revalidation_interval_seconds,
        ),
    )

    # 5. Cookie authentication schemes
    registry.add_singleton(
        AuthenticationOptions,
        lambda sp: AuthenticationOptions().add_identity_cookies(
            session_max_age=config.identity.session_max_age,
            two_factor_seconds=config.identity.two_factor_session_seconds,
        ),
    )
    registry.add_scoped(RequestContext, lambda sp: RequestContext())
    registry.add_scoped(
        AuthenticationService,
        lambda sp: AuthenticationService(
            sp.get(SessionStorage), sp.get(RequestContext), sp.get(AuthenticationOptions)
        ),
    )

    # 6. Database context
    registry.add_singleton(
        DbSessionService,
        lambda sp: DbSessionService(database_url, config.database, context.environment),
    )
    registry.add_scoped(Session, lambda sp: sp.get(DbSessionService).get_session())

    # 7. Database diagnostics page
    if context.environment.is_development:
        registry.add_singleton(
            DatabaseDeveloperPageExceptionFilter,
            lambda sp: DatabaseDeveloperPageExceptionFilter(sp.get(MigrationRunner)),
        )

    # 8. Identity core
    registry.add_singleton(SigningKey, lambda sp: SigningKey.from_config(config.security))
    registry.add_singleton(PasswordHasher, lambda sp: PasswordHasher())
    registry.add_singleton(
        TokenProviders,
        lambda sp: TokenProviders(
            sp.get(SigningKey).value, config.identity.token_lifespan_seconds
        ),
    )
    registry.add_scoped(
        UserManager,
        lambda sp: UserManager(
            sp.get(Session), sp.get(PasswordHasher), sp.get(TokenProviders), config.identity
        ),
    )
    registry.add_scoped(
        SignInManager,
        lambda sp: SignInManager(sp.get(UserManager), sp.get(AuthenticationService)),
    )

    # 9. Email sender that sends nothing
    registry.add_singleton(EmailSender, lambda sp: NoOpEmailSender())

    # Session store and migrations
    registry.add_singleton(SessionStorage, lambda sp: create_session_storage(config.redis))
    registry.add_singleton(
        MigrationRunner,
        lambda sp: MigrationRunner(
            sp.get(DbSessionService), lock_id=config.database.migration_lock_id
        ),
    )

    logger.info("Registered {} services", len(registry.registration_order))
    return registry
