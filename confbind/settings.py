"""Redis connection settings and their provider-bound variants."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, SecretStr

from .keys import EnvironmentVariable, SecretName


class ConnectionSettings(BaseModel):
    """Endpoint, credentials and flags for one Redis connection."""

    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: SecretStr | None = None
    is_unix_socket: bool = False
    use_ssl: bool = False
    allow_admin: bool = False
    database: int = 0


class EnvironmentConnectionSettings(ConnectionSettings):
    """Connection settings read from ``REDIS_*`` environment variables."""

    host: Annotated[str | None, EnvironmentVariable("REDIS_HOST")] = None
    port: Annotated[int | None, EnvironmentVariable("REDIS_PORT")] = None
    username: Annotated[str | None, EnvironmentVariable("REDIS_USERNAME")] = None
    password: Annotated[SecretStr | None, EnvironmentVariable("REDIS_PASSWORD")] = None
    is_unix_socket: Annotated[bool, EnvironmentVariable("REDIS_IS_SOCKET")] = False
    use_ssl: Annotated[bool, EnvironmentVariable("REDIS_USE_SSL")] = False
    allow_admin: Annotated[bool, EnvironmentVariable("REDIS_ALLOW_ADMIN")] = False
    database: Annotated[int, EnvironmentVariable("REDIS_DATABASE")] = 0


class SecretsConnectionSettings(ConnectionSettings):
    """Connection settings read from ``redis-*`` files in the secrets directory."""

    host: Annotated[str | None, SecretName("redis-host")] = None
    port: Annotated[int | None, SecretName("redis-port")] = None
    username: Annotated[str | None, SecretName("redis-username")] = None
    password: Annotated[SecretStr | None, SecretName("redis-password")] = None
    is_unix_socket: Annotated[bool, SecretName("redis-is-socket")] = False
    use_ssl: Annotated[bool, SecretName("redis-use-ssl")] = False
    allow_admin: Annotated[bool, SecretName("redis-allow-admin")] = False
    database: Annotated[int, SecretName("redis-database")] = 0


__all__ = [
    "ConnectionSettings",
    "EnvironmentConnectionSettings",
    "SecretsConnectionSettings",
]
