"""Entry points for creating and retrieving registered Redis connections."""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

from .config import DEFAULT_SECTION
from .connections import Connection, EnvironmentConnection, FileConnection, SecretsConnection
from .registry import REGISTRY
from .settings import EnvironmentConnectionSettings, SecretsConnectionSettings

C = TypeVar("C", bound=Connection)
E = TypeVar("E", bound=EnvironmentConnection)
S = TypeVar("S", bound=SecretsConnection)


def connect(connection: C) -> C:
    """Register ``connection`` under its concrete type unless one already exists."""

    return REGISTRY.instance(type(connection), connection)


def connection(type_: type[C]) -> C:
    """Return the registered ``type_`` connection, creating it on first use."""

    return REGISTRY.get_or_create(type_, type_)


def connect_with_environment_variables(type_: type[E] = EnvironmentConnection) -> E:  # type: ignore[assignment]
    return REGISTRY.get_or_create(type_, type_)


def connect_with_secrets(type_: type[S] = SecretsConnection) -> S:  # type: ignore[assignment]
    return REGISTRY.get_or_create(type_, type_)


def connect_from_environment(
    settings_type: type[EnvironmentConnectionSettings] = EnvironmentConnectionSettings,
) -> EnvironmentConnection:
    """Build an unregistered connection from a custom environment settings model."""

    return EnvironmentConnection(settings_type)


def connect_from_secrets(
    settings_type: type[SecretsConnectionSettings] = SecretsConnectionSettings,
) -> SecretsConnection:
    """Build an unregistered connection from a custom secrets settings model."""

    return SecretsConnection(settings_type)


def connect_from_file(path: Path | None = None, section: str = DEFAULT_SECTION) -> FileConnection:
    return FileConnection(path, section)


__all__ = [
    "connect",
    "connect_from_environment",
    "connect_from_file",
    "connect_from_secrets",
    "connect_with_environment_variables",
    "connect_with_secrets",
    "connection",
]
