"""The authenticated user as seen by pages and route guards."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Principal:
    user_id: str | None = None
    user_name: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    authentication_scheme: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def is_in_role(self, role: str) -> bool:
        return role.upper() in (r.upper() for r in self.roles)


ANONYMOUS = Principal()


@dataclass(frozen=True)
class AuthenticationState:
    user: Principal = ANONYMOUS

    @classmethod
    def anonymous(cls) -> AuthenticationState:
        return cls(ANONYMOUS)
