"""Registration and email confirmation."""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from src.auth_starter.api.http.deps import (
    PageResponder,
    get_email_sender,
    get_page,
    get_sign_in_manager,
    get_user_manager,
)
from src.auth_starter.api.http.routers.account._forms import (
    FormField,
    absolute_url,
    hidden,
    result_errors,
    return_url_or_home,
)
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.services.email_sender import EmailSender
from src.auth_starter.entities.core.user.entity import User

router = APIRouter()

PASSWORD_MISMATCH = "The password and confirmation password do not match."


def _register_form(
    page: PageResponder,
    email: str = "",
    return_url: str | None = None,
    errors: list[str] | None = None,
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Register",
        description="Create a new account.",
        fields=[
            FormField("email", "Email", "email", email, "username", "name@example.com"),
            FormField("password", "Password", "password", autocomplete="new-password"),
            FormField(
                "confirm_password", "Confirm Password", "password", autocomplete="new-password"
            ),
            hidden("return_url", return_url),
        ],
        submit_label="Register",
        errors=errors or [],
    )


async def send_confirmation_email(
    request: Request,
    users: UserManager,
    email_sender: EmailSender,
    user: User,
    return_url: str | None = None,
) -> str:
    """Email the confirmation link to ``user`` and return it."""
    query = {"userId": user.id, "code": users.generate_email_confirmation_token(user)}
    if return_url:
        query["returnUrl"] = return_url
    link = absolute_url(request, "/Account/ConfirmEmail", query)
    await email_sender.send_confirmation_link(user, user.email or "", link)
    return link


@router.get("/Register", response_class=HTMLResponse)
async def register_page(
    return_url: str | None = Query(None, alias="ReturnUrl"),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return _register_form(page, return_url=return_url)


@router.post("/Register", response_class=HTMLResponse, response_model=None)
async def register(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    return_url: str | None = Form(None),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    email_sender: EmailSender = Depends(get_email_sender),
) -> Response:
    if password != confirm_password:
        return _register_form(page, email, return_url, [PASSWORD_MISMATCH])

    user = users.new_user(email)
    result = await run_in_threadpool(users.create, user, password)
    if not result.succeeded:
        return _register_form(page, email, return_url, result_errors(result))

    logger.info("User created a new account with password")
    await send_confirmation_email(request, users, email_sender, user, return_url)

    if users.options.require_confirmed_account:
        query = urlencode({"email": user.email or "", "returnUrl": return_url or "/"})
        return RedirectResponse(f"/Account/RegisterConfirmation?{query}", status_code=303)

    await sign_in.sign_in(user, is_persistent=False)
    return RedirectResponse(return_url_or_home(return_url), status_code=303)


@router.get("/RegisterConfirmation", response_class=HTMLResponse, response_model=None)
async def register_confirmation(
    request: Request,
    email: str | None = Query(None),
    return_url: str | None = Query(None, alias="returnUrl"),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    email_sender: EmailSender = Depends(get_email_sender),
) -> Response:
    if not email:
        return RedirectResponse("/", status_code=303)

    user = await run_in_threadpool(users.find_by_email, email)
    if user is None:
        return page(
            "account/message.html",
            status_code=404,
            title="Register confirmation",
            message="Error finding user for unspecified email",
            danger=True,
        )

    link = None
    if getattr(email_sender, "displays_confirmation_link", False):
        # No real email sender is registered, so show the link on the page
        query = {"userId": user.id, "code": users.generate_email_confirmation_token(user)}
        if return_url:
            query["returnUrl"] = return_url
        link = absolute_url(request, "/Account/ConfirmEmail", query)

    return page(
        "account/message.html",
        title="Register confirmation",
        message=(
            "This app does not currently have a real email sender registered. "
            "Normally this would be emailed: "
            if link
            else "Please check your email to confirm your account."
        ),
        link=(link, "Click here to confirm your account") if link else None,
    )


@router.get("/ConfirmEmail", response_class=HTMLResponse, response_model=None)
async def confirm_email(
    user_id: str | None = Query(None, alias="userId"),
    code: str | None = Query(None),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> Response:
    if not user_id or not code:
        return RedirectResponse("/", status_code=303)

    user = await run_in_threadpool(users.find_by_id, user_id)
    if user is None:
        return page(
            "account/message.html",
            status_code=404,
            title="Confirm email",
            message=f"Error finding user with ID {user_id}",
            danger=True,
        )

    result = await run_in_threadpool(users.confirm_email, user, code)
    return page(
        "account/message.html",
        title="Confirm email",
        message=(
            "Thank you for confirming your email."
            if result.succeeded
            else "Error confirming your email."
        ),
        danger=not result.succeeded,
    )


@router.get("/ConfirmEmailChange", response_class=HTMLResponse, response_model=None)
async def confirm_email_change(
    user_id: str | None = Query(None, alias="userId"),
    email: str | None = Query(None),
    code: str | None = Query(None),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    if not user_id or not email or not code:
        return RedirectResponse("/", status_code=303)

    user = await run_in_threadpool(users.find_by_id, user_id)
    if user is None:
        return page(
            "account/message.html",
            status_code=404,
            title="Confirm email change",
            message=f"Unable to find user with ID '{user_id}'",
            danger=True,
        )

    result = await run_in_threadpool(users.change_email, user, email, code)
    if not result.succeeded:
        return page(
            "account/message.html",
            title="Confirm email change",
            message="Error changing email.",
            danger=True,
        )

    # The user name doubles as the email address
    result = await run_in_threadpool(users.set_user_name, user, email)
    if not result.succeeded:
        return page(
            "account/message.html",
            title="Confirm email change",
            message="Error changing user name.",
            danger=True,
        )

    await sign_in.refresh_sign_in(user)
    return page(
        "account/message.html",
        title="Confirm email change",
        message="Thank you for confirming your email change.",
    )


def _resend_form(
    page: PageResponder, email: str = "", message: str | None = None
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Resend email confirmation",
        description="Enter your email.",
        fields=[FormField("email", "Email", "email", email, "email", "name@example.com")],
        submit_label="Resend",
        status_message=message,
        errors=[],
    )


@router.get("/ResendEmailConfirmation", response_class=HTMLResponse)
async def resend_email_confirmation_page(
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return _resend_form(page)


@router.post("/ResendEmailConfirmation", response_class=HTMLResponse)
async def resend_email_confirmation(
    request: Request,
    email: str = Form(""),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    email_sender: EmailSender = Depends(get_email_sender),
) -> HTMLResponse:
    user = await run_in_threadpool(users.find_by_email, email) if email else None
    if user is not None:
        await send_confirmation_email(request, users, email_sender, user)
    # Same answer whether or not the account exists
    return _resend_form(
        page, email, "Verification email sent. Please check your email."
    )
