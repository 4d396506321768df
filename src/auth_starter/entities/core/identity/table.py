"""Database tables owned by the identity core."""

from sqlmodel import Field, SQLModel

from src.auth_starter.entities._base import EntityTable


class RoleTable(EntityTable, table=True):
    __tablename__ = "roles"

    name: str = Field(max_length=256)
    normalized_name: str = Field(max_length=256, unique=True, index=True)
    concurrency_stamp: str | None = None


class UserRoleTable(SQLModel, table=True):
    __tablename__ = "user_roles"

    user_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    role_id: str = Field(
        foreign_key="roles.id", primary_key=True, index=True, ondelete="CASCADE"
    )


class UserClaimTable(SQLModel, table=True):
    __tablename__ = "user_claims"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    claim_type: str | None = None
    claim_value: str | None = None


class UserLoginTable(SQLModel, table=True):
    __tablename__ = "user_logins"

    login_provider: str = Field(primary_key=True, max_length=128)
    provider_key: str = Field(primary_key=True, max_length=128)
    provider_display_name: str | None = None
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")


class UserTokenTable(SQLModel, table=True):
    __tablename__ = "user_tokens"

    user_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    login_provider: str = Field(primary_key=True, max_length=128)
    name: str = Field(primary_key=True, max_length=128)
    value: str | None = None


class RoleClaimTable(SQLModel, table=True):
    __tablename__ = "role_claims"

    id: int | None = Field(default=None, primary_key=True)
    role_id: str = Field(foreign_key="roles.id", index=True, ondelete="CASCADE")
    claim_type: str | None = None
    claim_value: str | None = None
