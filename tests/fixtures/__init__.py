"""Shared pytest fixtures and helpers."""

from .app import *  # noqa: F401,F403
from .core import *  # noqa: F401,F403
