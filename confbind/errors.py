"""Error taxonomy shared by the binder, providers and connections."""

from __future__ import annotations

from redis.exceptions import RedisError


class ConfbindError(RuntimeError):
    """Base error for configuration binding failures."""


class ConfigurationError(ConfbindError, ValueError):
    """Raised when a required value or key declaration is missing."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class BindingError(ConfbindError, TypeError):
    """Raised when a resolved string cannot be coerced into its target type."""

    def __init__(self, message: str, *, key: str | None = None, target: object = None) -> None:
        super().__init__(message)
        self.key = key
        self.target = target


class RegistryError(ConfbindError, LookupError):
    """Raised when a connection type was never registered."""


# Transport failures come straight from redis-py and are never wrapped.
TransportError = RedisError


__all__ = [
    "BindingError",
    "ConfbindError",
    "ConfigurationError",
    "RegistryError",
    "TransportError",
]
