"""Tests for the user and identity repositories."""

from datetime import UTC, datetime, timedelta

import pytest

from src.auth_starter.entities import (
    Role,
    RoleRepository,
    User,
    UserRepository,
    UserTokenRepository,
)


def make_user(email: str = "alice@example.com") -> User:
    return User(
        user_name=email,
        normalized_user_name=email.upper(),
        email=email,
        normalized_email=email.upper(),
    )


class TestUserRepository:
    def test_create_and_lookup(self, session):
        repository = UserRepository(session)
        created = repository.create(make_user())

        assert repository.get(created.id) == created
        assert repository.get_by_normalized_user_name("ALICE@EXAMPLE.COM").id == created.id
        assert repository.get_by_normalized_email("ALICE@EXAMPLE.COM").id == created.id
        assert repository.get("missing") is None
        assert repository.get_by_normalized_email("BOB@EXAMPLE.COM") is None

    def test_update(self, session):
        repository = UserRepository(session)
        user = repository.create(make_user())
        user.phone_number = "555-0100"
        user.lockout_end = datetime.now(UTC) + timedelta(minutes=5)

        updated = repository.update(user)

        assert updated.phone_number == "555-0100"
        assert updated.is_locked_out()

    def test_update_missing_user(self, session):
        with pytest.raises(ValueError, match="not found"):
            UserRepository(session).update(make_user())

    def test_delete_removes_dependent_rows(self, session):
        users = UserRepository(session)
        roles = RoleRepository(session)
        tokens = UserTokenRepository(session)
        user = users.create(make_user())
        role = roles.create(Role(name="Admin", normalized_name="ADMIN"))
        roles.add_user_to_role(user.id, role.id)
        tokens.set(user.id, "[AspNetUserStore]", "AuthenticatorKey", "KEY")

        assert users.delete(user.id)

        assert users.get(user.id) is None
        assert roles.get_role_names(user.id) == []
        assert tokens.get(user.id, "[AspNetUserStore]", "AuthenticatorKey") is None
        assert not users.delete(user.id)


class TestRoleRepository:
    def test_membership(self, session):
        user = UserRepository(session).create(make_user())
        roles = RoleRepository(session)
        admin = roles.create(Role(name="Admin", normalized_name="ADMIN"))
        editor = roles.create(Role(name="Editor", normalized_name="EDITOR"))

        roles.add_user_to_role(user.id, editor.id)
        roles.add_user_to_role(user.id, admin.id)
        roles.add_user_to_role(user.id, admin.id)

        assert roles.get_role_names(user.id) == ["Admin", "Editor"]
        assert roles.get_by_normalized_name("ADMIN").id == admin.id

        roles.remove_user_from_role(user.id, admin.id)
        roles.remove_user_from_role(user.id, admin.id)
        assert roles.get_role_names(user.id) == ["Editor"]


class TestUserTokenRepository:
    def test_set_overwrites(self, session):
        user = UserRepository(session).create(make_user())
        tokens = UserTokenRepository(session)

        tokens.set(user.id, "store", "name", "first")
        tokens.set(user.id, "store", "name", "second")

        assert tokens.get(user.id, "store", "name") == "second"
        tokens.remove(user.id, "store", "name")
        assert tokens.get(user.id, "store", "name") is None


def test_locked_out_only_when_enabled():
    user = make_user()
    user.lockout_end = datetime.now(UTC) + timedelta(minutes=5)
    assert user.is_locked_out()
    user.lockout_enabled = False
    assert not user.is_locked_out()
