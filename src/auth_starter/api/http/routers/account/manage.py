"""Account management: profile, email, password and personal data."""

import json

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse, Response

from src.auth_starter.api.http.deps import (
    PageResponder,
    get_email_sender,
    get_page,
    get_redirect_manager,
    get_required_user,
    get_sign_in_manager,
    get_user_manager,
)
from src.auth_starter.api.http.routers.account._forms import (
    FormField,
    absolute_url,
    result_errors,
)
from src.auth_starter.api.http.routers.account.register import (
    PASSWORD_MISMATCH,
    send_confirmation_email,
)
from src.auth_starter.core.identity.accessors import IdentityRedirectManager
from src.auth_starter.core.identity.sign_in_manager import SignInManager
from src.auth_starter.core.identity.user_manager import UserManager
from src.auth_starter.core.services.email_sender import EmailSender
from src.auth_starter.entities.core.user.entity import User

router = APIRouter()


# -- profile ---------------------------------------------------------------


def _profile_form(
    page: PageResponder, user: User, errors: list[str] | None = None
) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Profile",
        manage=True,
        fields=[
            FormField("username", "Username", "text", user.user_name, readonly=True),
            FormField("phone_number", "Phone number", "tel", user.phone_number or ""),
        ],
        submit_label="Save",
        errors=errors or [],
    )


@router.get("/Manage", response_class=HTMLResponse)
async def manage_index_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return _profile_form(page, user)


@router.post("/Manage", response_class=HTMLResponse)
async def manage_index(
    phone_number: str = Form(""),
    user: User = Depends(get_required_user),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> HTMLResponse:
    phone_number = phone_number.strip()
    if phone_number != (user.phone_number or ""):
        result = await run_in_threadpool(users.set_phone_number, user, phone_number)
        if not result.succeeded:
            raise redirects.redirect_to_current_page_with_status(
                "Error: Failed to set phone number."
            )

    await sign_in.refresh_sign_in(user)
    raise redirects.redirect_to_current_page_with_status("Your profile has been updated")


# -- email -----------------------------------------------------------------


def _email_form(
    page: PageResponder, user: User, new_email: str = "", errors: list[str] | None = None
) -> HTMLResponse:
    return page(
        "account/email.html",
        title="Manage email",
        manage=True,
        email=user.email,
        is_email_confirmed=user.email_confirmed,
        new_email=new_email,
        errors=errors or [],
    )


@router.get("/Manage/Email", response_class=HTMLResponse)
async def email_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return _email_form(page, user)


@router.post("/Manage/Email", response_class=HTMLResponse)
async def change_email(
    request: Request,
    action: str = Form("change"),
    new_email: str = Form(""),
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    email_sender: EmailSender = Depends(get_email_sender),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> HTMLResponse:
    if action == "verify":
        await send_confirmation_email(request, users, email_sender, user)
        raise redirects.redirect_to_current_page_with_status(
            "Verification email sent. Please check your email."
        )

    new_email = new_email.strip()
    if not new_email or "@" not in new_email:
        return _email_form(page, user, new_email, ["The New email field is not a valid e-mail address."])
    if new_email.upper() == (user.email or "").upper():
        raise redirects.redirect_to_current_page_with_status("Your email is unchanged.")

    code = users.generate_change_email_token(user, new_email)
    link = absolute_url(
        request,
        "/Account/ConfirmEmailChange",
        {"userId": user.id, "email": new_email, "code": code},
    )
    await email_sender.send_confirmation_link(user, new_email, link)
    raise redirects.redirect_to_current_page_with_status(
        "Confirmation link to change email sent. Please check your email."
    )


# -- password --------------------------------------------------------------


def _change_password_form(page: PageResponder, errors: list[str] | None = None) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Change password",
        manage=True,
        fields=[
            FormField(
                "old_password", "Old password", "password", autocomplete="current-password"
            ),
            FormField("new_password", "New password", "password", autocomplete="new-password"),
            FormField(
                "confirm_password", "Confirm password", "password", autocomplete="new-password"
            ),
        ],
        submit_label="Update password",
        errors=errors or [],
    )


@router.get("/Manage/ChangePassword", response_class=HTMLResponse, response_model=None)
async def change_password_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> Response:
    if not users.has_password(user):
        return RedirectResponse("/Account/Manage/SetPassword", status_code=303)
    return _change_password_form(page)


@router.post("/Manage/ChangePassword", response_class=HTMLResponse)
async def change_password(
    old_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> HTMLResponse:
    if new_password != confirm_password:
        return _change_password_form(
            page, ["The new password and confirmation password do not match."]
        )

    result = await run_in_threadpool(users.change_password, user, old_password, new_password)
    if not result.succeeded:
        return _change_password_form(page, result_errors(result))

    await sign_in.refresh_sign_in(user)
    logger.info("User changed their password successfully")
    raise redirects.redirect_to_current_page_with_status("Your password has been changed")


def _set_password_form(page: PageResponder, errors: list[str] | None = None) -> HTMLResponse:
    return page(
        "account/form.html",
        title="Set password",
        description=(
            "You do not have a local username/password for this site. Add a local "
            "account so you can log in without an external login."
        ),
        manage=True,
        fields=[
            FormField("new_password", "New password", "password", autocomplete="new-password"),
            FormField(
                "confirm_password", "Confirm password", "password", autocomplete="new-password"
            ),
        ],
        submit_label="Set password",
        errors=errors or [],
    )


@router.get("/Manage/SetPassword", response_class=HTMLResponse, response_model=None)
async def set_password_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> Response:
    if users.has_password(user):
        return RedirectResponse("/Account/Manage/ChangePassword", status_code=303)
    return _set_password_form(page)


@router.post("/Manage/SetPassword", response_class=HTMLResponse)
async def set_password(
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
    redirects: IdentityRedirectManager = Depends(get_redirect_manager),
) -> HTMLResponse:
    if new_password != confirm_password:
        return _set_password_form(page, [PASSWORD_MISMATCH])

    result = await run_in_threadpool(users.add_password, user, new_password)
    if not result.succeeded:
        return _set_password_form(page, result_errors(result))

    await sign_in.refresh_sign_in(user)
    raise redirects.redirect_to_current_page_with_status("Your password has been set.")


# -- personal data ---------------------------------------------------------


@router.get("/Manage/PersonalData", response_class=HTMLResponse)
async def personal_data(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    return page("account/personal_data.html", title="Personal Data", manage=True)


@router.post("/Manage/DownloadPersonalData")
async def download_personal_data(
    user: User = Depends(get_required_user),
    users: UserManager = Depends(get_user_manager),
) -> Response:
    logger.info("User with ID '{}' asked for their personal data", user.id)
    data = await run_in_threadpool(users.get_personal_data, user)
    return Response(
        content=json.dumps(data),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="PersonalData.json"'},
    )


def _delete_form(
    page: PageResponder, require_password: bool, errors: list[str] | None = None
) -> HTMLResponse:
    fields = []
    if require_password:
        fields.append(
            FormField("password", "Password", "password", autocomplete="current-password")
        )
    return page(
        "account/form.html",
        title="Delete Personal Data",
        description=(
            "Deleting this data will permanently remove your account, and this "
            "cannot be recovered."
        ),
        manage=True,
        danger=True,
        fields=fields,
        submit_label="Delete data and close my account",
        errors=errors or [],
    )


@router.get("/Manage/DeletePersonalData", response_class=HTMLResponse)
async def delete_personal_data_page(
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
) -> HTMLResponse:
    return _delete_form(page, users.has_password(user))


@router.post("/Manage/DeletePersonalData", response_class=HTMLResponse, response_model=None)
async def delete_personal_data(
    password: str = Form(""),
    user: User = Depends(get_required_user),
    page: PageResponder = Depends(get_page),
    users: UserManager = Depends(get_user_manager),
    sign_in: SignInManager = Depends(get_sign_in_manager),
) -> Response:
    require_password = users.has_password(user)
    if require_password and not await run_in_threadpool(users.check_password, user, password):
        return _delete_form(page, require_password, ["Error: Incorrect password."])

    result = await run_in_threadpool(users.delete, user)
    if not result.succeeded:
        raise RuntimeError("Unexpected error occurred deleting user.")

    await sign_in.sign_out()
    logger.info("User with ID '{}' deleted themselves", user.id)
    return RedirectResponse("/", status_code=303)
