"""Shared helpers for the account pages."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from fastapi import Request

from src.auth_starter.core.identity.result import IdentityResult
from src.auth_starter.core.security import sanitize_return_url


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    type: str = "text"
    value: str = ""
    autocomplete: str | None = None
    placeholder: str | None = None
    readonly: bool = False


def hidden(name: str, value: str | None) -> FormField:
    return FormField(name=name, label="", type="hidden", value=value or "")


def result_errors(result: IdentityResult) -> list[str]:
    return [error.description for error in result.errors]


def return_url_or_home(return_url: str | None) -> str:
    return sanitize_return_url(return_url)


def absolute_url(request: Request, path: str, query: dict[str, str]) -> str:
    """Absolute link sent in emails, e.g. ``https://host/Account/ConfirmEmail?...``."""
    base = str(request.base_url).rstrip("/")
    return f"{base}{path}?{urlencode(query)}"
