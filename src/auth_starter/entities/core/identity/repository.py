"""Repositories for roles and per-user tokens."""

from sqlmodel import Session, select

from src.auth_starter.entities.core.identity.entity import Role
from src.auth_starter.entities.core.identity.table import (
    RoleTable,
    UserRoleTable,
    UserTokenTable,
)


class RoleRepository:
    """Data-access layer for roles and role membership."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_normalized_name(self, normalized_name: str) -> Role | None:
        statement = select(RoleTable).where(RoleTable.normalized_name == normalized_name)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Role.model_validate(row, from_attributes=True)

    def create(self, role: Role) -> Role:
        row = RoleTable.model_validate(role.model_dump())
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return Role.model_validate(row, from_attributes=True)

    def add_user_to_role(self, user_id: str, role_id: str) -> None:
        if self._session.get(UserRoleTable, (user_id, role_id)) is None:
            self._session.add(UserRoleTable(user_id=user_id, role_id=role_id))
            self._session.commit()

    def remove_user_from_role(self, user_id: str, role_id: str) -> None:
        row = self._session.get(UserRoleTable, (user_id, role_id))
        if row is not None:
            self._session.delete(row)
            self._session.commit()

    def get_role_names(self, user_id: str) -> list[str]:
        statement = (
            select(RoleTable.name)
            .join(UserRoleTable, UserRoleTable.role_id == RoleTable.id)
            .where(UserRoleTable.user_id == user_id)
            .order_by(RoleTable.name)
        )
        return list(self._session.exec(statement).all())


class UserTokenRepository:
    """Named token values stored per user and login provider."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str, login_provider: str, name: str) -> str | None:
        row = self._session.get(UserTokenTable, (user_id, login_provider, name))
        return row.value if row else None

    def set(self, user_id: str, login_provider: str, name: str, value: str) -> None:
        row = self._session.get(UserTokenTable, (user_id, login_provider, name))
        if row is None:
            row = UserTokenTable(
                user_id=user_id, login_provider=login_provider, name=name, value=value
            )
        else:
            row.value = value
        self._session.add(row)
        self._session.commit()

    def remove(self, user_id: str, login_provider: str, name: str) -> None:
        row = self._session.get(UserTokenTable, (user_id, login_provider, name))
        if row is not None:
            self._session.delete(row)
            self._session.commit()
