"""Supporting identity tables: roles, claims, external logins and tokens."""

from .entity import Role
from .repository import RoleRepository, UserTokenRepository
from .table import (
    RoleClaimTable,
    RoleTable,
    UserClaimTable,
    UserLoginTable,
    UserRoleTable,
    UserTokenTable,
)

__all__ = [
    "Role",
    "RoleRepository",
    "UserTokenRepository",
    "RoleTable",
    "RoleClaimTable",
    "UserRoleTable",
    "UserClaimTable",
    "UserLoginTable",
    "UserTokenTable",
]
