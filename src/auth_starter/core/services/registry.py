"""Explicit dependency container with singleton and scoped lifetimes.

Services are registered once at startup into a :class:`ServiceRegistry`,
which is then frozen into a :class:`ServiceProvider`. The provider is
read-only and safe to resolve from concurrently. Scoped services live in a
:class:`ServiceScope`, one per request (or per unit of startup work).

Factories receive the resolver they are being built from, so a scoped
factory can depend on both singletons and other scoped services::

    registry = ServiceRegistry()
    registry.add_singleton(DbSessionService, lambda sp: DbSessionService(url))
    registry.add_scoped(Session, lambda sp: sp.get(DbSessionService).get_session())

    provider = registry.build_provider()
    with provider.create_scope() as scope:
        session = scope.get(Session)
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar, cast

from loguru import logger

from src.auth_starter.core.exceptions import ScopeError, ServiceNotRegisteredError

T = TypeVar("T")

Factory = Callable[["ServiceResolver"], Any]


class Lifetime(str, Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"


@dataclass(frozen=True)
class ServiceDescriptor:
    key: Any
    factory: Factory
    lifetime: Lifetime

    @property
    def name(self) -> str:
        return getattr(self.key, "__name__", str(self.key))


class ServiceRegistry:
    """Collects service registrations before the provider is built."""

    def __init__(self) -> None:
        self._descriptors: dict[Any, ServiceDescriptor] = {}
        self._order: list[str] = []

    def add_singleton(
        self, key: type[T] | Any, factory: Callable[[ServiceResolver], T]
    ) -> ServiceRegistry:
        return self._add(key, factory, Lifetime.SINGLETON)

    def add_scoped(
        self, key: type[T] | Any, factory: Callable[[ServiceResolver], T]
    ) -> ServiceRegistry:
        return self._add(key, factory, Lifetime.SCOPED)

    def add_instance(self, key: type[T] | Any, instance: T) -> ServiceRegistry:
        """Register an already-built singleton."""
        return self._add(key, lambda _: instance, Lifetime.SINGLETON)

    def _add(self, key: Any, factory: Factory, lifetime: Lifetime) -> ServiceRegistry:
        descriptor = ServiceDescriptor(key=key, factory=factory, lifetime=lifetime)
        # Later registrations replace earlier ones, keeping the original position.
        if key not in self._descriptors:
            self._order.append(descriptor.name)
        self._descriptors[key] = descriptor
        logger.debug("Registered {} service {}", lifetime.value, descriptor.name)
        return self

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors

    @property
    def registration_order(self) -> list[str]:
        return list(self._order)

    def descriptor(self, key: Any) -> ServiceDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise ServiceNotRegisteredError(key) from None

    def build_provider(self) -> ServiceProvider:
        return ServiceProvider(dict(self._descriptors))


class ServiceResolver:
    """Common resolution interface for the root provider and scopes."""

    def get(self, key: type[T] | Any) -> T:  # pragma: no cover - interface
        raise NotImplementedError

    def get_optional(self, key: type[T] | Any) -> T | None:
        try:
            return self.get(key)
        except ServiceNotRegisteredError:
            return None


class ServiceProvider(ServiceResolver):
    """Root provider: owns singleton instances and creates scopes."""

    def __init__(self, descriptors: dict[Any, ServiceDescriptor]) -> None:
        self._descriptors = descriptors
        self._singletons: dict[Any, Any] = {}
        self._lock = threading.RLock()

    def _descriptor(self, key: Any) -> ServiceDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise ServiceNotRegisteredError(key) from None

    def is_registered(self, key: Any) -> bool:
        return key in self._descriptors

    def get(self, key: type[T] | Any) -> T:
        descriptor = self._descriptor(key)
        if descriptor.lifetime is Lifetime.SCOPED:
            raise ScopeError(
                f"Scoped service '{descriptor.name}' cannot be resolved from the root provider"
            )
        return cast(T, self._get_singleton(descriptor))

    def _get_singleton(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.key in self._singletons:
            return self._singletons[descriptor.key]
        with self._lock:
            if descriptor.key not in self._singletons:
                logger.debug("Creating singleton {}", descriptor.name)
                self._singletons[descriptor.key] = descriptor.factory(self)
            return self._singletons[descriptor.key]

    def create_scope(self) -> ServiceScope:
        return ServiceScope(self)

    def close(self) -> None:
        """Dispose singletons that expose ``close()`` or ``dispose()``."""
        with self._lock:
            instances = list(self._singletons.values())
            self._singletons.clear()
        for instance in reversed(instances):
            _dispose(instance)


class ServiceScope(ServiceResolver):
    """A unit of work; scoped instances are cached until the scope closes."""

    def __init__(self, root: ServiceProvider) -> None:
        self._root = root
        self._instances: dict[Any, Any] = {}
        self._closed = False

    @property
    def root(self) -> ServiceProvider:
        return self._root

    def get(self, key: type[T] | Any) -> T:
        if self._closed:
            raise ScopeError("Service scope has already been closed")
        descriptor = self._root._descriptor(key)
        if descriptor.lifetime is Lifetime.SINGLETON:
            return cast(T, self._root._get_singleton(descriptor))
        if key not in self._instances:
            self._instances[key] = descriptor.factory(self)
        return cast(T, self._instances[key])

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        instances = list(self._instances.values())
        self._instances.clear()
        for instance in reversed(instances):
            _dispose(instance)

    def __enter__(self) -> ServiceScope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _dispose(instance: Any) -> None:
    for name in ("close", "dispose"):
        method = getattr(instance, name, None)
        if callable(method):
            method()
            return
