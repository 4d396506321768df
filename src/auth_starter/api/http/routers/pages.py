"""Application pages."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from src.auth_starter.api.http.deps import PageResponder, get_page, require_authenticated
from src.auth_starter.core.identity.principal import Principal

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
async def home(page: PageResponder = Depends(get_page)) -> HTMLResponse:
    return page("pages/home.html", title="Home")


@router.get("/auth", response_class=HTMLResponse)
async def auth_required(
    user: Principal = Depends(require_authenticated),
    page: PageResponder = Depends(get_page),
) -> HTMLResponse:
    """Page only available to signed-in users."""
    return page("pages/auth.html", title="Auth required", user=user)


@router.get("/Error", response_class=HTMLResponse)
async def error(request: Request, page: PageResponder = Depends(get_page)) -> HTMLResponse:
    request_id = getattr(request.state, "request_id", None)
    return page("pages/error.html", title="Error", request_id=request_id)
