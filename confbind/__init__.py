"""Typed configuration binding for environment variables, secrets and Redis."""

from __future__ import annotations

from .binder import bind, bind_async, bind_type, bind_type_async, unbind, unbind_async
from .bootstrap import (
    connect,
    connect_from_environment,
    connect_from_file,
    connect_from_secrets,
    connect_with_environment_variables,
    connect_with_secrets,
    connection,
)
from .codec import SerializerSettings
from .connections import (
    Connection,
    ConnectionOptions,
    Database,
    EnvironmentConnection,
    FileConnection,
    SecretsConnection,
)
from .errors import BindingError, ConfbindError, ConfigurationError, RegistryError, TransportError
from .keys import (
    EnvironmentVariable,
    KeyBinding,
    RedisDatabase,
    RedisKey,
    SecretName,
    key_binding,
    redis_database,
)
from .providers import ENVIRONMENT, SECRETS, EnvironmentProvider, SecretsProvider
from .registry import REGISTRY, Registry
from .settings import ConnectionSettings, EnvironmentConnectionSettings, SecretsConnectionSettings

__version__ = "0.1.0"

__all__ = [
    "BindingError",
    "ConfbindError",
    "ConfigurationError",
    "Connection",
    "ConnectionOptions",
    "ConnectionSettings",
    "Database",
    "ENVIRONMENT",
    "EnvironmentConnection",
    "EnvironmentConnectionSettings",
    "EnvironmentProvider",
    "EnvironmentVariable",
    "FileConnection",
    "KeyBinding",
    "REGISTRY",
    "RedisDatabase",
    "RedisKey",
    "Registry",
    "RegistryError",
    "SECRETS",
    "SecretName",
    "SecretsConnection",
    "SecretsConnectionSettings",
    "SecretsProvider",
    "SerializerSettings",
    "TransportError",
    "bind",
    "bind_async",
    "bind_type",
    "bind_type_async",
    "connect",
    "connect_from_environment",
    "connect_from_file",
    "connect_from_secrets",
    "connect_with_environment_variables",
    "connect_with_secrets",
    "connection",
    "key_binding",
    "redis_database",
    "unbind",
    "unbind_async",
]
