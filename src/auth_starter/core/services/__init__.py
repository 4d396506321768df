"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# Email
from .email_sender import EmailSender, NoOpEmailSender

# Dependency container
from .registry import (
    Lifetime,
    ServiceDescriptor,
    ServiceProvider,
    ServiceRegistry,
    ServiceScope,
)

__all__ = [
    "DbSessionService",
    "EmailSender",
    "NoOpEmailSender",
    "Lifetime",
    "ServiceDescriptor",
    "ServiceProvider",
    "ServiceRegistry",
    "ServiceScope",
]
