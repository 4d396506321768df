"""Email sending used by account confirmation and password reset."""

from abc import ABC, abstractmethod

from loguru import logger

from src.auth_starter.entities.core.user.entity import User


class EmailSender(ABC):
    @abstractmethod
    async def send_confirmation_link(self, user: User, email: str, link: str) -> None:
        ...

    @abstractmethod
    async def send_password_reset_link(self, user: User, email: str, link: str) -> None:
        ...

    @abstractmethod
    async def send_password_reset_code(self, user: User, email: str, code: str) -> None:
        ...


class NoOpEmailSender(EmailSender):
    """Sends nothing.

    Registered so the identity pages have an email sender; the registration
    confirmation page shows the confirmation link directly while this sender
    is in use. Replace it with a real implementation before going live.
    """

    displays_confirmation_link = True

    async def send_confirmation_link(self, user: User, email: str, link: str) -> None:
        logger.debug("Email sending disabled; confirmation link for {} not sent", user.id)

    async def send_password_reset_link(self, user: User, email: str, link: str) -> None:
        logger.debug("Email sending disabled; reset link for {} not sent", user.id)

    async def send_password_reset_code(self, user: User, email: str, code: str) -> None:
        logger.debug("Email sending disabled; reset code for {} not sent", user.id)
