"""Sign-in, two-factor sign-in and sign-out."""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger
from starlette.responses import Response

from src.auth_starter.api.http.deps import (
    PageResponder,
    get_page,
    get_services,
    get_sign_in_manager,
)
from src.auth_starter.api.http.routers.account._forms import (
    FormField,
    hidden,
    return_url_or_home,
)
from src.auth_starter.core.identity.authentication import AuthenticationService
from src.auth_starter.core.identity.constants import IdentityConstants
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.services.registry import ServiceScope

router = APIRouter()

INVALID_LOGIN = "Error: Invalid login attempt."


def _login_form(
    page: PageResponder,
    email: str = "",
    return_url: str | None = None,
    errors: list[str] | None = None,
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Log in",
        description="Use a local account to log in.",
        fields=[
            FormField("email", "Email", "email", email, "username", "name@example.com"),
            FormField("password", "Password", "password", autocomplete="current-password"),
            FormField("remember_me", "Remember me?", "checkbox"),
            hidden("return_url", return_url),
        ],
        submit_label="Log in",
        errors=errors or [],
        links=[
            ("/Account/ForgotPassword", "Forgot your password?"),
            (
                "/Account/Register?" + urlencode({"ReturnUrl": return_url or "/"}),
                "Register as a new user",
            ),
            ("/Account/ResendEmailConfirmation", "Resend email confirmation"),
        ],
    )


@router.get("/Login", response_class=HTMLResponse)
async def login_page(
    return_url: str | None = Query(None, alias="ReturnUrl"),
    page: PageResponder = Depends(get_page),
    services: ServiceScope = Depends(get_services),
) -> HTMLResponse:
    # Clear any partial external sign-in to ensure a clean login process
    await services.get(AuthenticationService).sign_out(IdentityConstants.EXTERNAL_SCHEME)
    return _login_form(page, return_url=return_url)


@router.post("/Login", response_class=HTMLResponse, response_model=None)
async def login(
    email: str = Form(""),
    password: str = Form(""),
    remember_me: bool = Form(False),
    return_url: str | None = Form(None),
    page: PageResponder = Depends(get_page),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    if not email or not password:
        return _login_form(
            page, email, return_url, ["The Email and Password fields are required."]
        )

    result = await sign_in.password_sign_in(
        email, password, is_persistent=remember_me, lockout_on_failure=True
    )
    if result.succeeded:
        return RedirectResponse(return_url_or_home(return_url), status_code=303)
    if result.requires_two_factor:
        query = urlencode({"ReturnUrl": return_url or "/", "RememberMe": str(remember_me).lower()})
        return RedirectResponse(f"/Account/LoginWith2fa?{query}", status_code=303)
    if result.is_locked_out:
        logger.warning("User account locked out")
        return RedirectResponse("/Account/Lockout", status_code=303)
    return _login_form(page, email, return_url, [INVALID_LOGIN])


def _two_factor_form(
    page: PageResponder,
    remember_me: bool,
    return_url: str | None,
    errors: list[str] | None = None,
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Two-factor authentication",
        description="Your login is protected with an authenticator app. Enter your authenticator code below.",
        fields=[
            FormField("two_factor_code", "Authenticator code", autocomplete="off"),
            FormField("remember_machine", "Remember this machine", "checkbox"),
            hidden("remember_me", str(remember_me).lower()),
            hidden("return_url", return_url),
        ],
        submit_label="Log in",
        errors=errors or [],
        links=[
            (
                "/Account/LoginWithRecoveryCode?" + urlencode({"ReturnUrl": return_url or "/"}),
                "Log in with a recovery code",
            )
        ],
    )


@router.get("/LoginWith2fa", response_class=HTMLResponse, response_model=None)
async def login_with_2fa_page(
    return_url: str | None = Query(None, alias="ReturnUrl"),
    remember_me: bool = Query(False, alias="RememberMe"),
    page: PageResponder = Depends(get_page),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    if await sign_in.get_two_factor_authentication_user() is None:
        return page(
            "account/message.html",
            status_code=400,
            title="Two-factor authentication",
            message="Unable to load two-factor authentication user.",
        )
    return _two_factor_form(page, remember_me, return_url)


@router.post("/LoginWith2fa", response_class=HTMLResponse, response_model=None)
async def login_with_2fa(
    two_factor_code: str = Form(""),
    remember_machine: bool = Form(False),
    remember_me: bool = Form(False),
    return_url: str | None = Form(None),
    page: PageResponder = Depends(get_page),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    user = await sign_in.get_two_factor_authentication_user()
    if user is None:
        return page(
            "account/message.html",
            status_code=400,
            title="Two-factor authentication",
            message="Unable to load two-factor authentication user.",
        )

    result = await sign_in.two_factor_authenticator_sign_in(
        two_factor_code, is_persistent=remember_me, remember_client=remember_machine
    )
    if result.succeeded:
        return RedirectResponse(return_url_or_home(return_url), status_code=303)
    if result.is_locked_out:
        logger.warning("User with ID '{}' account locked out", user.id)
        return RedirectResponse("/Account/Lockout", status_code=303)
    logger.warning("Invalid authenticator code entered for user with ID '{}'", user.id)
    return _two_factor_form(
        page, remember_me, return_url, ["Error: Invalid authenticator code."]
    )


def _recovery_form(
    page: PageResponder, return_url: str | None, errors: list[str] | None = None
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Recovery code verification",
        description=(
            "You have requested to log in with a recovery code. This login will not "
            "be remembered until you provide an authenticator app code at log in or "
            "disable 2FA and log in again."
        ),
        fields=[
            FormField("recovery_code", "Recovery Code", autocomplete="off"),
            hidden("return_url", return_url),
        ],
        submit_label="Log in",
        errors=errors or [],
    )


@router.get("/LoginWithRecoveryCode", response_class=HTMLResponse, response_model=None)
async def login_with_recovery_code_page(
    return_url: str | None = Query(None, alias="ReturnUrl"),
    page: PageResponder = Depends(get_page),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    if await sign_in.get_two_factor_authentication_user() is None:
        return page(
            "account/message.html",
            status_code=400,
            title="Recovery code verification",
            message="Unable to load two-factor authentication user.",
        )
    return _recovery_form(page, return_url)


@router.post("/LoginWithRecoveryCode", response_class=HTMLResponse, response_model=None)
async def login_with_recovery_code(
    recovery_code: str = Form(""),
    return_url: str | None = Form(None),
    page: PageResponder = Depends(get_page),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    user = await sign_in.get_two_factor_authentication_user()
    if user is None:
        return page(
            "account/message.html",
            status_code=400,
            title="Recovery code verification",
            message="Unable to load two-factor authentication user.",
        )

    result = await sign_in.two_factor_recovery_code_sign_in(recovery_code)
    if result.succeeded:
        logger.info("User with ID '{}' logged in with a recovery code", user.id)
        return RedirectResponse(return_url_or_home(return_url), status_code=303)
    if result.is_locked_out:
        return RedirectResponse("/Account/Lockout", status_code=303)
    logger.warning("Invalid recovery code entered for user with ID '{}'", user.id)
    return _recovery_form(page, return_url, ["Error: Invalid recovery code entered."])


@router.post("/Logout")
async def logout(
    return_url: str | None = Form(None),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> RedirectResponse:
    await sign_in.sign_out()
    logger.info("User logged out")
    return RedirectResponse(return_url_or_home(return_url), status_code=303)


@router.get("/Lockout", response_class=HTMLResponse)
async def lockout(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/message.html",
        title="Locked out",
        message="This account has been locked out, please try again later.",
        danger=True,
    )


@router.get("/AccessDenied", response_class=HTMLResponse)
async def access_denied(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/message.html",
        status_code=403,
        title="Access denied",
        message="You do not have access to this resource.",
        danger=True,
    )


@router.get("/InvalidUser", response_class=HTMLResponse)
async def invalid_user(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page("account/message.html", title="Invalid user", message=None, danger=True)
