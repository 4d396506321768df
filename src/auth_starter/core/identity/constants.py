"""Well-known authentication scheme, cookie and token names."""


class IdentityConstants:
    APPLICATION_SCHEME = "Identity.Application"
    EXTERNAL_SCHEME = "Identity.External"
    TWO_FACTOR_USER_ID_SCHEME = "Identity.TwoFactorUserId"
    TWO_FACTOR_REMEMBER_ME_SCHEME = "Identity.TwoFactorRememberMe"

    COOKIE_PREFIX = ".AspNetCore."
    STATUS_MESSAGE_COOKIE = "Identity.StatusMessage"

    AUTHENTICATOR_STORE = "[AspNetUserStore]"
    AUTHENTICATOR_KEY_TOKEN = "AuthenticatorKey"
    RECOVERY_CODES_TOKEN = "RecoveryCodes"

    @classmethod
    def cookie_name(cls, scheme: str) -> str:
        return f"{cls.COOKIE_PREFIX}{scheme}"
