"""HTTP middleware installed by the pipeline assembler."""

from .antiforgery import AntiforgeryMiddleware
from .database_error_page import (
    DatabaseDeveloperPageExceptionFilter,
    DatabaseErrorPageMiddleware,
)
from .exception_handler import ExceptionHandlerMiddleware
from .hsts import HstsMiddleware
from .https_redirection import HttpsRedirectionMiddleware
from .migrations_endpoint import MigrationsEndPointMiddleware
from .request_logging import RequestLoggingMiddleware
from .request_scope import RequestScopeMiddleware

__all__ = [
    "AntiforgeryMiddleware",
    "DatabaseDeveloperPageExceptionFilter",
    "DatabaseErrorPageMiddleware",
    "ExceptionHandlerMiddleware",
    "HstsMiddleware",
    "HttpsRedirectionMiddleware",
    "MigrationsEndPointMiddleware",
    "RequestLoggingMiddleware",
    "RequestScopeMiddleware",
]
