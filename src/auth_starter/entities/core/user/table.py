"""User database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.auth_starter.entities._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users."""

    __tablename__ = "users"

    user_name: str = Field(max_length=256)
    normalized_user_name: str = Field(max_length=256, unique=True, index=True)
    email: str | None = Field(default=None, max_length=256)
    normalized_email: str | None = Field(default=None, max_length=256, index=True)
    email_confirmed: bool = False
    password_hash: str | None = None
    security_stamp: str | None = None
    concurrency_stamp: str | None = None
    phone_number: str | None = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    lockout_enabled: bool = True
    access_failed_count: int = 0
