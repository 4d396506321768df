from __future__ import annotations

import html
import re
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.auth_starter.api.http.app import create_app
from src.auth_starter.api.http.service_registration import register_application_services
from src.auth_starter.core.identity.password_hasher import PasswordHasher
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.services.registry import ServiceProvider, ServiceRegistry
from src.auth_starter.runtime.config.config_data import (
    ConfigData,
    DatabaseConfig,
    SecurityConfig,
)
from src.auth_starter.runtime.context import AppContext
from src.auth_starter.runtime.settings import EnvironmentVariables
from src.auth_starter.runtime.startup import apply_startup_migrations
from tests.fixtures.core import TEST_PASSWORD

TOKEN_PATTERN = re.compile(r'name="__RequestVerificationToken" value="([^"]+)"')
LINK_PATTERN = re.compile(r'id="confirm-link" href="([^"]+)"')

__all__ = [
    "antiforgery_token",
    "build_app",
    "clean_environment",
    "confirm_link",
    "database_url",
    "dev_client",
    "make_context",
    "make_settings",
    "prod_client",
    "sign_in_user",
    "test_config",
]


def make_settings(**values: str) -> EnvironmentVariables:
    """Settings built from explicit values only, ignoring any ``.env`` file."""
    return EnvironmentVariables(_env_file=None, **values)


def antiforgery_token(page: str) -> str:
    match = TOKEN_PATTERN.search(page)
    assert match is not None, "page has no anti-forgery token"
    return match.group(1)


def confirm_link(page: str) -> str:
    match = LINK_PATTERN.search(page)
    assert match is not None, "page has no confirmation link"
    return html.unescape(match.group(1))


def sign_in_user(client: TestClient, email: str, roles: tuple[str, ...] = ()) -> None:
    """Create a confirmed user in ``roles`` and sign the client in as them."""
    provider: ServiceProvider = client.app.state.services_provider
    with provider.create_scope() as scope:
        users = scope.get(UserManager)
        user = users.new_user(email)
        assert users.create(user, TEST_PASSWORD).succeeded
        assert users.confirm_email(user, users.generate_email_confirmation_token(user)).succeeded
        for role in roles:
            assert users.add_to_role(user, role).succeeded

    token = antiforgery_token(client.get("/Account/Login").text)
    response = client.post(
        "/Account/Login",
        data={"email": email, "password": TEST_PASSWORD, "__RequestVerificationToken": token},
        follow_redirects=False,
    )
    assert response.status_code == 303, response.text


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's platform variables out of the tests."""
    for name in ("DATABASE_URL_POSTGRESQL", "PORT", "APP_ENVIRONMENT", "APP_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'app.db'}"


@pytest.fixture
def test_config(database_url: str) -> ConfigData:
    return ConfigData(
        database=DatabaseConfig(default_connection=database_url),
        security=SecurityConfig(signing_secret="test-signing-secret", secure_cookies=False),
    )


@pytest.fixture
def make_context(test_config: ConfigData) -> Callable[..., AppContext]:
    def _make(environment: str = "test", config: ConfigData | None = None) -> AppContext:
        return AppContext(
            config=config or test_config,
            settings=make_settings(APP_ENVIRONMENT=environment),
        )

    return _make


@pytest.fixture
def build_app() -> Generator[Callable[..., tuple[FastAPI, ServiceProvider]]]:
    """Assemble an application the way startup does, with a fast password hasher."""
    providers: list[ServiceProvider] = []

    def _build(
        context: AppContext,
        migrate: bool = True,
        password_hasher: PasswordHasher | None = None,
    ) -> tuple[FastAPI, ServiceProvider]:
        hasher = password_hasher or PasswordHasher(rounds=4)
        registry = register_application_services(ServiceRegistry(), context)
        registry.add_singleton(PasswordHasher, lambda sp: hasher)
        provider = registry.build_provider()
        providers.append(provider)
        app = create_app(context, provider)
        if migrate:
            apply_startup_migrations(provider)
        return app, provider

    yield _build

    for provider in providers:
        provider.close()


@pytest.fixture
def dev_client(build_app, make_context) -> Generator[TestClient]:
    app, _ = build_app(make_context("development"))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def prod_client(build_app, make_context) -> Generator[TestClient]:
    app, _ = build_app(make_context("production"))
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
