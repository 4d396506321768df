"""Identity core: user management, sign-in, tokens and authentication state."""

from .constants import IdentityConstants
from .password_hasher import PasswordHasher, PasswordVerificationResult
from .principal import AuthenticationState, Principal
from .result import IdentityError, IdentityResult, SignInResult
from .sign_in_manager import SignInManager
from .tokens import TokenProviders
from .user_manager import UserManager

__all__ = [
    "IdentityConstants",
    "PasswordHasher",
    "PasswordVerificationResult",
    "AuthenticationState",
    "Principal",
    "IdentityError",
    "IdentityResult",
    "SignInResult",
    "SignInManager",
    "TokenProviders",
    "UserManager",
]
