"""Entities module with hybrid entity-centric structure.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.identity import (
    Role,
    RoleClaimTable,
    RoleRepository,
    RoleTable,
    UserClaimTable,
    UserLoginTable,
    UserRoleTable,
    UserTokenRepository,
    UserTokenTable,
)
from .core.user import User, UserRepository, UserTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "Role",
    "RoleTable",
    "RoleRepository",
    "UserRoleTable",
    "UserClaimTable",
    "UserLoginTable",
    "UserTokenTable",
    "UserTokenRepository",
    "RoleClaimTable",
]
