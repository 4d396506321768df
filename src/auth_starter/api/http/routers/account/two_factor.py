"""Two-factor authentication management."""

from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from src.auth_starter.api.http.deps import (
    PageResponder,
    get_page,
    get_redirect_manager,
    get_required_user,
    get_sign_in_manager,
    get_user_manager,
)
from src.auth_starter.core.identity import totp
from src.auth_starter.core.identity.accessors import IdentityRedirectManager
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.entities.core.user.entity import User

router = APIRouter(prefix="/Manage")


@router.get("/TwoFactorAuthentication", response_class=HTMLResponse)
async def two_factor_authentication(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> HTMLResponse:
    return page(
        "account/two_factor.html",
        title="Two-factor authentication (2FA)",
        manage=True,
        has_authenticator=await run_in_threadpool(users.get_authenticator_key, user) is not None,
        is_2fa_enabled=user.two_factor_enabled,
        recovery_codes_left=await run_in_threadpool(users.count_recovery_codes, user),
        is_machine_remembered=await sign_in.is_two_factor_client_remembered(user),
    )


@router.post("/TwoFactorAuthentication")
async def forget_browser(
    user: User = Depends(get_required_user),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> Response:
    await sign_in.forget_two_factor_client()
    raise redirects.redirect_to_current_page_with_status(
        "The current browser has been forgotten. When you login again from this "
        "browser you will be prompted for your 2fa code."
    )


async def _enable_authenticator_page(
    page: PageResponder,
    users: UserManager,
    user: User,
    errors: list[str] | None = None,
) -> HTMLResponse:
    key = await run_in_threadpool(users.get_authenticator_key, user)
    if key is None:
        await run_in_threadpool(users.reset_authenticator_key, user)
        key = await run_in_threadpool(users.get_authenticator_key, user) or ""
    return page(
        "account/enable_authenticator.html",
        title="Configure authenticator app",
        manage=True,
        shared_key=totp.format_key(key),
        authenticator_uri=totp.authenticator_uri(
            users.options.authenticator_issuer, user.email or user.user_name, key
        ),
        errors=errors or [],
    )


@router.get("/EnableAuthenticator", response_class=HTMLResponse)
async def enable_authenticator_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> HTMLResponse:
    return await _enable_authenticator_page(page, users, user)


@router.post("/EnableAuthenticator", response_class=HTMLResponse)
async def enable_authenticator(
    code: str = Form(""),
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> HTMLResponse:
    if not await run_in_threadpool(users.verify_authenticator_code, user, code):
        return await _enable_authenticator_page(
            page, users, user, ["Error: Verification code is invalid."]
        )

    await run_in_threadpool(users.set_two_factor_enabled, user, True)
    await sign_in.refresh_sign_in(user)
    logger.info("User with ID '{}' has enabled 2FA with an authenticator app", user.id)

    message = "Your authenticator app has been verified."
    if await run_in_threadpool(users.count_recovery_codes, user) == 0:
        codes = await run_in_threadpool(users.generate_recovery_codes, user, 10)
        return page(
            "account/recovery_codes.html",
            title="Recovery codes",
            manage=True,
            recovery_codes=codes,
            status_message=message,
        )
    raise redirects.redirect_to_with_status("/Account/Manage/TwoFactorAuthentication", message)


@router.get("/Disable2fa", response_class=HTMLResponse)
async def disable_2fa_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    if not user.two_factor_enabled:
        raise RuntimeError("Cannot disable 2FA for user as it's not currently enabled.")
    return page(
        "account/form.html",
        title="Disable two-factor authentication (2FA)",
        description=(
            "Disabling 2FA does not change the keys used in authenticator apps. If you "
            "wish to change the key used in an authenticator app you should reset your "
            "authenticator keys."
        ),
        manage=True,
        danger=True,
        fields=[],
        submit_label="Disable 2FA",
        errors=[],
    )


@router.post("/Disable2fa")
async def disable_2fa(
    user: User = Depends(get_required_user),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> Response:
    result = await run_in_threadpool(users.set_two_factor_enabled, user, False)
    if not result.succeeded:
        raise RuntimeError("Unexpected error occurred disabling 2FA.")

    await sign_in.refresh_sign_in(user)

    logger.info("User with ID '{}' has disabled 2fa", user.id)
    raise redirects.redirect_to_with_status(
        "/Account/Manage/TwoFactorAuthentication",
        "2fa has been disabled. You can reenable 2fa when you setup an authenticator app",
    )


@router.get("/ResetAuthenticator", response_class=HTMLResponse)
async def reset_authenticator_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Reset authenticator key",
        description=(
            "If you reset your authenticator key your authenticator app will not work "
            "until you reconfigure it. This process disables 2FA until you verify your "
            "authenticator app."
        ),
        manage=True,
        danger=True,
        fields=[],
        submit_label="Reset authenticator key",
        errors=[],
    )


@router.post("/ResetAuthenticator")
async def reset_authenticator(
    user: User = Depends(get_required_user),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> Response:
    await run_in_threadpool(users.set_two_factor_enabled, user, False)
    await run_in_threadpool(users.reset_authenticator_key, user)
    logger.info("User with ID '{}' has reset their authentication app key", user.id)

    await sign_in.refresh_sign_in(user)
    raise redirects.redirect_to_with_status(
        "/Account/Manage/EnableAuthenticator",
        "Your authenticator app key has been reset, you will need to configure your "
        "authenticator app using the new key.",
    )


@router.get("/GenerateRecoveryCodes", response_class=HTMLResponse)
async def generate_recovery_codes_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    if not user.two_factor_enabled:
        raise RuntimeError("Cannot generate recovery codes for user because they do not have 2FA enabled.")
    return page(
        "account/form.html",
        title="Generate two-factor authentication (2FA) recovery codes",
        description=(
            "Generating new recovery codes does not change the keys used in "
            "authenticator apps. Codes you generated before will no longer work."
        ),
        manage=True,
        danger=True,
        fields=[],
        submit_label="Generate Recovery Codes",
        errors=[],
    )


@router.post("/GenerateRecoveryCodes", response_class=HTMLResponse)
async def generate_recovery_codes(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> HTMLResponse:
    if not user.two_factor_enabled:
        raise RuntimeError("Cannot generate recovery codes for user as they do not have 2FA enabled.")

    codes = await run_in_threadpool(users.generate_recovery_codes, user, 10)
    logger.info("User with ID '{}' has generated new 2FA recovery codes", user.id)
    return page(
        "account/recovery_codes.html",
        title="Recovery codes",
        manage=True,
        recovery_codes=codes,
        status_message="You have generated new recovery codes.",
    )
