"""Identity account endpoints, mounted under ``/Account``."""

from fastapi import APIRouter

from .login import router as login_router
from .manage import router as manage_router
from .password import router as password_router
from .register import router as register_router
from .two_factor import router as two_factor_router

router = APIRouter(tags=["account"])
router.include_router(login_router)
router.include_router(register_router)
router.include_router(password_router)
router.include_router(manage_router)
router.include_router(two_factor_router)

__all__ = ["router"]
