"""Blocking identity work must not stall other requests."""

import asyncio
import threading

import httpx

from src.auth_starter.core.identity.password_hasher import PasswordHasher
from src.auth_starter.core.identity.user_manager import UserManager
from tests.fixtures.app import antiforgery_token
from tests.fixtures.core import TEST_PASSWORD

EMAIL = "alice@example.com"


class GatedHasher(PasswordHasher):
    """Holds password verification until the test releases it."""

    def __init__(self) -> None:
        super().__init__(rounds=4)
        self.entered = threading.Event()
        self.release = threading.Event()
        self.released = False

    def verify_hashed_password(self, hashed_password, provided_password):
        self.entered.set()
        # Times out only if verification runs on the event loop
        self.released = self.release.wait(timeout=2)
        return super().verify_hashed_password(hashed_password, provided_password)


class TestLoginDoesNotBlockTheEventLoop:
    async def test_health_served_while_password_is_checked(self, build_app, make_context):
        hasher = GatedHasher()
        app, provider = build_app(make_context("production"), password_hasher=hasher)
        with provider.create_scope() as scope:
            users = scope.get(UserManager)
            user = users.new_user(EMAIL)
            assert users.create(user, TEST_PASSWORD).succeeded
            assert users.confirm_email(user, users.generate_email_confirmation_token(user)).succeeded
        hasher.entered.clear()

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            token = antiforgery_token((await client.get("/Account/Login")).text)
            login = asyncio.create_task(
                client.post(
                    "/Account/Login",
                    data={
                        "email": EMAIL,
                        "password": TEST_PASSWORD,
                        "__RequestVerificationToken": token,
                    },
                )
            )

            assert await asyncio.to_thread(hasher.entered.wait, 2)
            health = await client.get("/health")
            hasher.release.set()
            response = await login

        assert health.status_code == 200
        assert health.json() == "Healthy"
        assert response.status_code == 303
        assert hasher.released
