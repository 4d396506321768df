from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from src.auth_starter.runtime.config.config_data import ConfigData
from src.auth_starter.runtime.config.config_template import load_templated_yaml
from src.auth_starter.runtime.environment import Environment
from src.auth_starter.runtime.settings import EnvironmentVariables


@dataclass(frozen=True)
class AppContext:
    """Application context containing configuration and process settings.

    Built once at startup and passed explicitly to service registration,
    pipeline assembly and the migration runner.
    """

    config: ConfigData
    settings: EnvironmentVariables

    @property
    def environment(self) -> Environment:
        return self.settings.environment

    @property
    def port(self) -> int:
        return self.settings.resolve_port(self.config.app.default_port)

    @property
    def host(self) -> str:
        return self.config.app.host

    @property
    def secure_cookies(self) -> bool:
        """Cookies are marked Secure except in development."""
        return self.config.security.secure_cookies and not self.environment.is_development


def load_config(path: Path) -> ConfigData:
    """Load ``config.yaml``; a missing file yields the built-in defaults."""
    if not path.exists():
        logger.warning("Configuration file {} not found; using defaults", path)
        return ConfigData()
    return load_templated_yaml(path)


def load_context(settings: EnvironmentVariables | None = None) -> AppContext:
    """Read the process environment and configuration file.

    Args:
        settings: Pre-built settings, mainly for tests. Read from the
            environment when omitted.
    """
    settings = settings or EnvironmentVariables()
    config = load_config(Path(settings.config_file))
    logger.info("Loaded configuration for environment: {}", settings.environment.value)
    return AppContext(config=config, settings=settings)
