"""Exception hierarchy for startup and service resolution failures."""


class AuthStarterError(Exception):
    """Base class for errors raised by the starter's own code."""


class ConfigurationError(AuthStarterError):
    """Configuration is missing or invalid; the process cannot start."""


class MissingConnectionStringError(ConfigurationError):
    """Neither the environment URL nor the static connection string is set."""


class ConnectionStringError(ConfigurationError):
    """A connection URL or key-value connection string could not be parsed."""


class MigrationError(AuthStarterError):
    """Applying schema migrations failed."""


class ServiceNotRegisteredError(AuthStarterError, LookupError):
    """A service was requested that the registry does not know about."""

    def __init__(self, key: object):
        name = getattr(key, "__name__", repr(key))
        super().__init__(f"No service registered for '{name}'")
        self.key = key


class ScopeError(AuthStarterError):
    """A scoped service was resolved outside of a service scope."""
