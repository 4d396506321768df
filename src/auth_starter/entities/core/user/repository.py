"""User repository for data access operations."""

from sqlmodel import Session, delete, select

from src.auth_starter.entities.core.identity.table import (
    UserClaimTable,
    UserLoginTable,
    UserRoleTable,
    UserTokenTable,
)
from src.auth_starter.entities.core.user.entity import User
from src.auth_starter.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_normalized_user_name(self, normalized_user_name: str) -> User | None:
        statement = select(UserTable).where(
            UserTable.normalized_user_name == normalized_user_name
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_normalized_email(self, normalized_email: str) -> User | None:
        statement = select(UserTable).where(UserTable.normalized_email == normalized_email)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def create(self, user: User) -> User:
        row = UserTable.model_validate(user.model_dump())
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def update(self, user: User) -> User:
        row = self._session.get(UserTable, user.id)
        if row is None:
            raise ValueError(f"User {user.id} not found")
        for field, value in user.model_dump(exclude={"id"}).items():
            setattr(row, field, value)
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def delete(self, user_id: str) -> bool:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return False
        # Dependent rows are removed explicitly; SQLite does not enforce cascades by default
        for table in (UserRoleTable, UserClaimTable, UserLoginTable, UserTokenTable):
            self._session.exec(delete(table).where(table.user_id == user_id))
        self._session.delete(row)
        self._session.commit()
        return True
