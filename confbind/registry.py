"""Process-wide single-instance-per-type store for live connections."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from .errors import RegistryError

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class Registry:
    """Keeps at most one instance per concrete type; the first writer wins."""

    def __init__(self) -> None:
        self._instances: dict[type, Any] = {}
        self._lock = threading.Lock()

    def instance(self, type_: type[T], value: T | None = None) -> T:
        """Return the stored instance, storing ``value`` first if none exists.

        Without ``value`` an unregistered type raises :class:`RegistryError`.
        """

        if value is None:
            try:
                return self._instances[type_]
            except KeyError:
                raise RegistryError(f"No {type_.__qualname__} instance has been registered") from None
        with self._lock:
            existing = self._instances.get(type_)
            if existing is not None:
                return existing
            self._instances[type_] = value
        LOG.info("Registered instance", extra={"instance_type": type_.__qualname__})
        return value

    def get_or_create(self, type_: type[T], factory: Callable[[], T]) -> T:
        """Return the stored instance, running ``factory`` at most once to create it."""

        existing = self._instances.get(type_)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._instances.get(type_)
            if existing is not None:
                return existing
            created = factory()
            self._instances[type_] = created
        LOG.info("Registered instance", extra={"instance_type": type_.__qualname__})
        return created

    def __contains__(self, type_: object) -> bool:
        return type_ in self._instances

    def reset(self) -> None:
        """Drop every instance (testing helper)."""

        with self._lock:
            self._instances.clear()


REGISTRY = Registry()


__all__ = ["REGISTRY", "Registry"]
