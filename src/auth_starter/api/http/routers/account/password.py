"""Forgotten password and password reset."""

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from src.auth_starter.api.http.deps import (
    PageResponder,
    get_email_sender,
    get_page,
    get_user_manager,
)
from src.auth_starter.api.http.routers.account._forms import (
    FormField,
    absolute_url,
    hidden,
    result_errors,
)
from src.auth_starter.api.http.routers.account.register import PASSWORD_MISMATCH
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.services.email_sender import EmailSender

router = APIRouter()


@router.get("/ForgotPassword", response_class=HTMLResponse)
async def forgot_password_page(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Forgot your password?",
        description="Enter your email.",
        fields=[FormField("email", "Email", "email", "", "username", "name@example.com")],
        submit_label="Reset password",
        errors=[],
    )


@router.post("/ForgotPassword")
async def forgot_password(
    request: Request,
    email: str = Form(""),
    users: UserManager = Depends(get_user_manager),
    email_sender: EmailSender = Depends(get_email_sender),
) -> RedirectResponse:
    user = await run_in_threadpool(users.find_by_email, email) if email else None
    # Don't reveal that the user does not exist or is not confirmed
    if user is not None and users.is_email_confirmed(user):
        code = users.generate_password_reset_token(user)
        link = absolute_url(request, "/Account/ResetPassword", {"code": code})
        await email_sender.send_password_reset_link(user, email, link)
    return RedirectResponse("/Account/ForgotPasswordConfirmation", status_code=303)


@router.get("/ForgotPasswordConfirmation", response_class=HTMLResponse)
async def forgot_password_confirmation(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/message.html",
        title="Forgot password confirmation",
        message="Please check your email to reset your password.",
    )


def _reset_form(
    page: PageResponder,
    code: str,
    email: str = "",
    errors: list[str] | None = None,
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Reset password",
        description="Reset your password.",
        fields=[
            FormField("email", "Email", "email", email, "username", "name@example.com"),
            FormField("password", "Password", "password", autocomplete="new-password"),
            FormField(
                "confirm_password", "Confirm password", "password", autocomplete="new-password"
            ),
            hidden("code", code),
        ],
        submit_label="Reset",
        errors=errors or [],
    )


@router.get("/ResetPassword", response_class=HTMLResponse, response_model=None)
async def reset_password_page(
    code: str | None = Query(None),
    page: PageResponder = Depends(get_page),
) -> Response:
    if not code:
        return RedirectResponse("/Account/InvalidPasswordReset", status_code=303)
    return _reset_form(page, code)


@router.post("/ResetPassword", response_class=HTMLResponse, response_model=None)
async def reset_password(
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    code: str = Form(""),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> Response:
    if password != confirm_password:
        return _reset_form(page, code, email, [PASSWORD_MISMATCH])

    user = await run_in_threadpool(users.find_by_email, email) if email else None
    if user is None:
        # Don't reveal that the user does not exist
        return RedirectResponse("/Account/ResetPasswordConfirmation", status_code=303)

    result = await run_in_threadpool(users.reset_password, user, code, password)
    if result.succeeded:
        return RedirectResponse("/Account/ResetPasswordConfirmation", status_code=303)
    return _reset_form(page, code, email, result_errors(result))


@router.get("/ResetPasswordConfirmation", response_class=HTMLResponse)
async def reset_password_confirmation(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/message.html",
        title="Reset password confirmation",
        message="Your password has been reset.",
        link=("/Account/Login", "Click here to log in"),
    )


@router.get("/InvalidPasswordReset", response_class=HTMLResponse)
async def invalid_password_reset(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page(
        "account/message.html",
        title="Invalid password reset",
        message="The password reset link is invalid.",
        danger=True,
    )
