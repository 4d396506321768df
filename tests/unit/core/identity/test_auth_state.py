"""Unit tests for authentication state and the account page helpers."""

import pytest

from src.auth_starter.core.identity.accessors import (
    IdentityRedirectManager,
    IdentityUserAccessor,
    RedirectRequired,
)
from src.auth_starter.core.identity.auth_state import (
    AuthenticationStateProvider,
    CascadingAuthenticationState,
    RevalidatingAuthenticationStateProvider,
)
from tests.fixtures.core import TEST_PASSWORD


@pytest.fixture
def signed_in_user(sign_in_manager, create_user):
    async def _sign_in():
        user = create_user()
        await sign_in_manager.password_sign_in("alice@example.com", TEST_PASSWORD, False, True)
        return user

    return _sign_in


class TestAuthenticationState:
    async def test_anonymous(self, authentication):
        state = await AuthenticationStateProvider(authentication).get_authentication_state()
        assert not state.user.is_authenticated

    async def test_signed_in_principal(self, authentication, user_manager, signed_in_user):
        user = await signed_in_user()
        user_manager.add_to_role(user, "Admin")

        state = await AuthenticationStateProvider(authentication).get_authentication_state()

        assert state.user.is_authenticated
        assert state.user.user_id == user.id
        assert state.user.user_name == "alice@example.com"
        # Roles are captured at sign-in
        assert not state.user.is_in_role("admin")

    async def test_revalidation_refreshes_roles(
        self, authentication, sign_in_manager, user_manager, signed_in_user
    ):
        user = await signed_in_user()
        user_manager.add_to_role(user, "Admin")
        provider = RevalidatingAuthenticationStateProvider(
            authentication, sign_in_manager, revalidation_interval_seconds=0
        )

        state = await provider.get_authentication_state()

        assert state.user.is_in_role("admin")
        ticket = await authentication.authenticate()
        assert ticket.roles == ["Admin"]

    async def test_security_stamp_change_signs_out(
        self, authentication, sign_in_manager, user_manager, signed_in_user
    ):
        user = await signed_in_user()
        user_manager.update_security_stamp(user)
        provider = RevalidatingAuthenticationStateProvider(
            authentication, sign_in_manager, revalidation_interval_seconds=0
        )

        state = await provider.get_authentication_state()

        assert not state.user.is_authenticated
        assert await authentication.authenticate() is None

    async def test_no_revalidation_within_interval(
        self, authentication, sign_in_manager, user_manager, signed_in_user
    ):
        user = await signed_in_user()
        user_manager.update_security_stamp(user)
        provider = RevalidatingAuthenticationStateProvider(authentication, sign_in_manager)

        state = await provider.get_authentication_state()

        assert state.user.is_authenticated

    async def test_cascading_state_is_cached(self, authentication, signed_in_user):
        cascading = CascadingAuthenticationState(AuthenticationStateProvider(authentication))
        first = await cascading.get()

        await signed_in_user()

        assert await cascading.get() is first
        cascading.reset()
        assert (await cascading.get()).user.is_authenticated


class TestIdentityRedirectManager:
    def test_local_redirect(self, request_context):
        redirect = IdentityRedirectManager(request_context).redirect_to(
            "/Account/Login", {"ReturnUrl": "/auth"}
        )
        assert isinstance(redirect, RedirectRequired)
        assert redirect.url == "/Account/Login?ReturnUrl=%2Fauth"
        assert redirect.status_code == 303

    def test_off_site_redirect_goes_home(self, request_context):
        assert IdentityRedirectManager(request_context).redirect_to("https://evil.example").url == "/"

    def test_status_message_is_one_shot(self, request_context):
        manager = IdentityRedirectManager(request_context)

        redirect = manager.redirect_to_current_page_with_status("Your profile has been updated")

        assert redirect.url == "/"
        assert manager.take_status_message() == "Your profile has been updated"
        assert manager.take_status_message() is None


class TestIdentityUserAccessor:
    async def test_required_user(self, authentication, user_manager, request_context, signed_in_user):
        user = await signed_in_user()
        accessor = IdentityUserAccessor(
            user_manager,
            IdentityRedirectManager(request_context),
            CascadingAuthenticationState(AuthenticationStateProvider(authentication)),
        )
        assert (await accessor.get_required_user()).id == user.id

    async def test_missing_user_redirects(self, authentication, user_manager, request_context):
        accessor = IdentityUserAccessor(
            user_manager,
            IdentityRedirectManager(request_context),
            CascadingAuthenticationState(AuthenticationStateProvider(authentication)),
        )
        with pytest.raises(RedirectRequired) as exc_info:
            await accessor.get_required_user()
        assert exc_info.value.url == "/Account/InvalidUser"
