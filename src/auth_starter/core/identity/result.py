"""Outcome types returned by identity operations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class IdentityError:
    code: str
    description: str


@dataclass(frozen=True)
class IdentityResult:
    """Result of a user-management operation; failures carry error details."""

    succeeded: bool
    errors: tuple[IdentityError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> IdentityResult:
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> IdentityResult:
        return cls(succeeded=False, errors=tuple(errors))

    @property
    def messages(self) -> list[str]:
        return [error.description for error in self.errors]

    def __str__(self) -> str:
        if self.succeeded:
            return "Succeeded"
        return "Failed : " + ",".join(error.code for error in self.errors)


@dataclass(frozen=True)
class SignInResult:
    succeeded: bool = False
    is_locked_out: bool = False
    is_not_allowed: bool = False
    requires_two_factor: bool = False

    @classmethod
    def success(cls) -> SignInResult:
        return cls(succeeded=True)

    @classmethod
    def failed(cls) -> SignInResult:
        return cls()

    @classmethod
    def locked_out(cls) -> SignInResult:
        return cls(is_locked_out=True)

    @classmethod
    def not_allowed(cls) -> SignInResult:
        return cls(is_not_allowed=True)

    @classmethod
    def two_factor_required(cls) -> SignInResult:
        return cls(requires_two_factor=True)
