"""User management: creation, passwords, email, lockout and two-factor state."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger
from sqlmodel import Session

from src.auth_starter.core.identity import totp
from src.auth_starter.core.identity.constants import IdentityConstants
from src.auth_starter.core.identity.password_hasher import (
    PasswordHasher,
    PasswordVerificationResult,
)
from src.auth_starter.core.identity.result import IdentityError, IdentityResult
from src.auth_starter.core.identity.tokens import TokenProviders, TokenPurpose
from src.auth_starter.entities._base import new_id
from src.auth_starter.entities.core.identity.entity import Role
from src.auth_starter.entities.core.identity.repository import (
    RoleRepository,
    UserTokenRepository,
)
from src.auth_starter.entities.core.user.entity import User
from src.auth_starter.entities.core.user.repository import UserRepository
from src.auth_starter.runtime.config.config_data import IdentityConfig


def normalize(value: str | None) -> str | None:
    return value.strip().upper() if value is not None else None


class UserManager:
    """Identity operations on users backed by the database context."""

    def __init__(
        self,
        session: Session,
        password_hasher: PasswordHasher,
        token_providers: TokenProviders,
        options: IdentityConfig,
    ) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._roles = RoleRepository(session)
        self._tokens = UserTokenRepository(session)
        self._hasher = password_hasher
        self._token_providers = token_providers
        self.options = options

    # -- lookup -----------------------------------------------------------

    def find_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def find_by_name(self, user_name: str) -> User | None:
        return self._users.get_by_normalized_user_name(normalize(user_name) or "")

    def find_by_email(self, email: str) -> User | None:
        return self._users.get_by_normalized_email(normalize(email) or "")

    # -- creation and deletion --------------------------------------------

    def validate_password(self, password: str) -> list[IdentityError]:
        rules = self.options.password
        errors: list[IdentityError] = []
        if len(password) < rules.required_length:
            errors.append(
                IdentityError(
                    "PasswordTooShort",
                    f"Passwords must be at least {rules.required_length} characters.",
                )
            )
        if len(password.encode("utf-8")) > 72:
            errors.append(
                IdentityError("PasswordTooLong", "Passwords must be at most 72 bytes.")
            )
        if rules.require_non_alphanumeric and password.isalnum():
            errors.append(
                IdentityError(
                    "PasswordRequiresNonAlphanumeric",
                    "Passwords must have at least one non alphanumeric character.",
                )
            )
        if rules.require_digit and not any(c.isdigit() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresDigit",
                    "Passwords must have at least one digit ('0'-'9').",
                )
            )
        if rules.require_lowercase and not any(c.islower() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresLower",
                    "Passwords must have at least one lowercase ('a'-'z').",
                )
            )
        if rules.require_uppercase and not any(c.isupper() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresUpper",
                    "Passwords must have at least one uppercase ('A'-'Z').",
                )
            )
        return errors

    def _validate_user(self, user: User) -> list[IdentityError]:
        errors: list[IdentityError] = []
        if not user.user_name or not user.user_name.strip():
            errors.append(IdentityError("InvalidUserName", "User name is invalid."))
        else:
            existing = self.find_by_name(user.user_name)
            if existing is not None and existing.id != user.id:
                errors.append(
                    IdentityError(
                        "DuplicateUserName",
                        f"Username '{user.user_name}' is already taken.",
                    )
                )
        if self.options.require_unique_email:
            if not user.email or "@" not in user.email:
                errors.append(
                    IdentityError("InvalidEmail", f"Email '{user.email}' is invalid.")
                )
            else:
                existing = self.find_by_email(user.email)
                if existing is not None and existing.id != user.id:
                    errors.append(
                        IdentityError(
                            "DuplicateEmail", f"Email '{user.email}' is already taken."
                        )
                    )
        return errors

    def new_user(self, email: str) -> User:
        """Build an unsaved user whose user name is the email address."""
        email = email.strip()
        return User(
            user_name=email,
            normalized_user_name=normalize(email) or "",
            email=email,
            normalized_email=normalize(email),
            lockout_enabled=self.options.lockout.allowed_for_new_users,
        )

    def create(self, user: User, password: str | None = None) -> IdentityResult:
        errors = self._validate_user(user)
        if password is not None:
            errors.extend(self.validate_password(password))
        if errors:
            return IdentityResult.failed(*errors)

        user.normalized_user_name = normalize(user.user_name) or ""
        user.normalized_email = normalize(user.email)
        if password is not None:
            user.password_hash = self._hasher.hash_password(password)
        user.security_stamp = new_id()
        self._users.create(user)
        logger.info("Created user {}", user.id)
        return IdentityResult.success()

    def delete(self, user: User) -> IdentityResult:
        if not self._users.delete(user.id):
            return IdentityResult.failed(
                IdentityError("UserNotFound", "User does not exist.")
            )
        logger.info("Deleted user {}", user.id)
        return IdentityResult.success()

    def _update(self, user: User) -> IdentityResult:
        errors = self._validate_user(user)
        if errors:
            return IdentityResult.failed(*errors)
        user.concurrency_stamp = new_id()
        self._users.update(user)
        return IdentityResult.success()

    def update_security_stamp(self, user: User) -> IdentityResult:
        user.security_stamp = new_id()
        return self._update(user)

    # -- passwords --------------------------------------------------------

    def has_password(self, user: User) -> bool:
        return user.password_hash is not None

    def check_password(self, user: User, password: str) -> bool:
        if user.password_hash is None:
            return False
        result = self._hasher.verify_hashed_password(user.password_hash, password)
        if result is PasswordVerificationResult.SUCCESS_REHASH_NEEDED:
            user.password_hash = self._hasher.hash_password(password)
            self._update(user)
        return result is not PasswordVerificationResult.FAILED

    def _set_password(self, user: User, new_password: str) -> IdentityResult:
        errors = self.validate_password(new_password)
        if errors:
            return IdentityResult.failed(*errors)
        user.password_hash = self._hasher.hash_password(new_password)
        return self.update_security_stamp(user)

    def add_password(self, user: User, password: str) -> IdentityResult:
        if user.password_hash is not None:
            return IdentityResult.failed(
                IdentityError("UserAlreadyHasPassword", "User already has a password set.")
            )
        return self._set_password(user, password)

    def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> IdentityResult:
        if not self.check_password(user, current_password):
            return IdentityResult.failed(
                IdentityError("PasswordMismatch", "Incorrect password.")
            )
        return self._set_password(user, new_password)

    def generate_password_reset_token(self, user: User) -> str:
        return self._token_providers.generate(TokenPurpose.RESET_PASSWORD, user)

    def reset_password(self, user: User, token: str, new_password: str) -> IdentityResult:
        if not self._token_providers.validate(TokenPurpose.RESET_PASSWORD, token, user):
            return IdentityResult.failed(IdentityError("InvalidToken", "Invalid token."))
        return self._set_password(user, new_password)

    # -- email ------------------------------------------------------------

    def is_email_confirmed(self, user: User) -> bool:
        return user.email_confirmed

    def generate_email_confirmation_token(self, user: User) -> str:
        return self._token_providers.generate(TokenPurpose.EMAIL_CONFIRMATION, user)

    def confirm_email(self, user: User, token: str) -> IdentityResult:
        if not self._token_providers.validate(
            TokenPurpose.EMAIL_CONFIRMATION, token, user
        ):
            return IdentityResult.failed(IdentityError("InvalidToken", "Invalid token."))
        user.email_confirmed = True
        return self._update(user)

    def generate_change_email_token(self, user: User, new_email: str) -> str:
        return self._token_providers.generate(TokenPurpose.change_email(new_email), user)

    def change_email(self, user: User, new_email: str, token: str) -> IdentityResult:
        if not self._token_providers.validate(
            TokenPurpose.change_email(new_email), token, user
        ):
            return IdentityResult.failed(IdentityError("InvalidToken", "Invalid token."))
        user.email = new_email.strip()
        user.normalized_email = normalize(user.email)
        user.email_confirmed = True
        user.security_stamp = new_id()
        return self._update(user)

    def set_user_name(self, user: User, user_name: str) -> IdentityResult:
        user.user_name = user_name.strip()
        user.normalized_user_name = normalize(user.user_name) or ""
        return self.update_security_stamp(user)

    # -- profile ----------------------------------------------------------

    def set_phone_number(self, user: User, phone_number: str | None) -> IdentityResult:
        user.phone_number = phone_number or None
        user.phone_number_confirmed = False
        return self.update_security_stamp(user)

    # -- lockout ----------------------------------------------------------

    def is_locked_out(self, user: User) -> bool:
        return user.is_locked_out()

    def set_lockout_end_date(self, user: User, lockout_end: datetime | None) -> IdentityResult:
        if not user.lockout_enabled:
            return IdentityResult.failed(
                IdentityError("UserLockoutNotEnabled", "Lockout is not enabled for this user.")
            )
        user.lockout_end = lockout_end
        return self._update(user)

    def access_failed(self, user: User) -> IdentityResult:
        """Record a failed attempt; locks the account once the limit is reached."""
        user.access_failed_count += 1
        lockout = self.options.lockout
        if user.lockout_enabled and user.access_failed_count >= lockout.max_failed_access_attempts:
            user.lockout_end = datetime.now(UTC) + timedelta(
                seconds=lockout.default_lockout_seconds
            )
            user.access_failed_count = 0
            logger.warning("User {} locked out after repeated failures", user.id)
        return self._update(user)

    def reset_access_failed_count(self, user: User) -> IdentityResult:
        if user.access_failed_count == 0:
            return IdentityResult.success()
        user.access_failed_count = 0
        return self._update(user)

    # -- roles ------------------------------------------------------------

    def add_to_role(self, user: User, role_name: str) -> IdentityResult:
        normalized = normalize(role_name) or ""
        role = self._roles.get_by_normalized_name(normalized)
        if role is None:
            role = self._roles.create(Role(name=role_name.strip(), normalized_name=normalized))
        self._roles.add_user_to_role(user.id, role.id)
        return IdentityResult.success()

    def remove_from_role(self, user: User, role_name: str) -> IdentityResult:
        role = self._roles.get_by_normalized_name(normalize(role_name) or "")
        if role is None:
            return IdentityResult.failed(
                IdentityError("UserNotInRole", f"User is not in role '{role_name}'.")
            )
        self._roles.remove_user_from_role(user.id, role.id)
        return IdentityResult.success()

    def get_roles(self, user: User) -> list[str]:
        return self._roles.get_role_names(user.id)

    # -- two-factor -------------------------------------------------------

    def set_two_factor_enabled(self, user: User, enabled: bool) -> IdentityResult:
        user.two_factor_enabled = enabled
        return self.update_security_stamp(user)

    def get_authenticator_key(self, user: User) -> str | None:
        return self._tokens.get(
            user.id,
            IdentityConstants.AUTHENTICATOR_STORE,
            IdentityConstants.AUTHENTICATOR_KEY_TOKEN,
        )

    def reset_authenticator_key(self, user: User) -> IdentityResult:
        self._tokens.set(
            user.id,
            IdentityConstants.AUTHENTICATOR_STORE,
            IdentityConstants.AUTHENTICATOR_KEY_TOKEN,
            totp.generate_key(),
        )
        return self.update_security_stamp(user)

    def verify_authenticator_code(self, user: User, code: str) -> bool:
        key = self.get_authenticator_key(user)
        if key is None:
            return False
        return totp.verify_code(key, code)

    def generate_recovery_codes(self, user: User, count: int = 10) -> list[str]:
        codes = [
            f"{secrets.token_hex(3)[:5]}-{secrets.token_hex(3)[:5]}".upper()
            for _ in range(count)
        ]
        self._tokens.set(
            user.id,
            IdentityConstants.AUTHENTICATOR_STORE,
            IdentityConstants.RECOVERY_CODES_TOKEN,
            ";".join(codes),
        )
        return codes

    def _recovery_codes(self, user: User) -> list[str]:
        stored = self._tokens.get(
            user.id,
            IdentityConstants.AUTHENTICATOR_STORE,
            IdentityConstants.RECOVERY_CODES_TOKEN,
        )
        return [code for code in (stored or "").split(";") if code]

    def count_recovery_codes(self, user: User) -> int:
        return len(self._recovery_codes(user))

    def redeem_recovery_code(self, user: User, code: str) -> IdentityResult:
        code = code.replace(" ", "").upper()
        codes = self._recovery_codes(user)
        if code not in codes:
            return IdentityResult.failed(
                IdentityError("RecoveryCodeRedemptionFailed", "Recovery code redemption failed.")
            )
        codes.remove(code)
        self._tokens.set(
            user.id,
            IdentityConstants.AUTHENTICATOR_STORE,
            IdentityConstants.RECOVERY_CODES_TOKEN,
            ";".join(codes),
        )
        return IdentityResult.success()

    # -- personal data ----------------------------------------------------

    def get_personal_data(self, user: User) -> dict[str, Any]:
        """Fields a user may download about themselves."""
        data: dict[str, Any] = {
            "Id": user.id,
            "UserName": user.user_name,
            "Email": user.email,
            "EmailConfirmed": user.email_confirmed,
            "PhoneNumber": user.phone_number,
            "PhoneNumberConfirmed": user.phone_number_confirmed,
            "TwoFactorEnabled": user.two_factor_enabled,
        }
        key = self.get_authenticator_key(user)
        if key is not None:
            data["Authenticator Key"] = key
        return data
