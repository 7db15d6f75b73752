"""Lazily-opened Redis connections configured from bound settings."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Iterator, TypeVar

import redis
from pydantic import BaseModel, SecretStr

from .binder import (
    bind,
    bind_async,
    bind_type,
    bind_type_async,
    unbind,
    unbind_async,
    unbind_type,
    unbind_type_async,
)
from .codec import DEFAULT_SERIALIZER_SETTINGS, SerializerSettings, decode, encode, zero_value
from .config import DEFAULT_SECTION, load_settings
from .errors import ConfigurationError
from .keys import KeyBinding, RedisKey, database_override
from .providers import ENVIRONMENT, SECRETS, EnvironmentProvider, SecretsProvider
from .settings import ConnectionSettings, EnvironmentConnectionSettings, SecretsConnectionSettings

LOG = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ConnectionOptions:
    """Immutable snapshot handed to the client opener."""

    host: str
    port: int | None
    unix_socket_path: str | None
    username: str | None
    password: str | None = field(repr=False)
    use_ssl: bool
    allow_admin: bool

    @property
    def endpoint(self) -> str:
        if self.unix_socket_path:
            return self.unix_socket_path
        return f"{self.host}:{self.port or DEFAULT_PORT}"

    def client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"ssl": self.use_ssl}
        if self.unix_socket_path:
            kwargs["unix_socket_path"] = self.unix_socket_path
        else:
            kwargs["host"] = self.host
            kwargs["port"] = self.port or DEFAULT_PORT
        if self.username:
            kwargs["username"] = self.username
        if self.password:
            kwargs["password"] = self.password
        return kwargs


def _names_file(host: str) -> bool:
    """True when ``host`` is a path (not a bare name) to an existing non-directory."""

    if not (os.path.isabs(host) or os.sep in host or "/" in host):
        return False
    return os.path.exists(host) and not os.path.isdir(host)


class Database:
    """View over the shared client addressing one logical database.

    Every command runs in a non-transactional pipeline that selects the index
    first, so views on different indexes can share the same connection pool.
    """

    def __init__(self, client: Any, index: int, *, allow_admin: bool = False) -> None:
        self._client = client
        self._index = index
        self._allow_admin = allow_admin

    @property
    def index(self) -> int:
        return self._index

    def get(self, key: str) -> bytes | None:
        pipe = self._pipeline()
        pipe.get(key)
        return pipe.execute()[-1]

    def set(self, key: str, value: str | bytes) -> None:
        pipe = self._pipeline()
        pipe.set(key, value)
        pipe.execute()

    def delete(self, key: str) -> None:
        pipe = self._pipeline()
        pipe.delete(key)
        pipe.execute()

    def flush(self) -> None:
        """Remove every key in this database; needs the admin flag."""

        if not self._allow_admin:
            raise ConfigurationError("Flushing a database requires an admin connection")
        pipe = self._pipeline()
        pipe.flushdb()
        pipe.execute()

    async def get_async(self, key: str) -> bytes | None:
        return await asyncio.to_thread(self.get, key)

    async def set_async(self, key: str, value: str | bytes) -> None:
        await asyncio.to_thread(self.set, key, value)

    async def delete_async(self, key: str) -> None:
        await asyncio.to_thread(self.delete, key)

    def _pipeline(self) -> Any:
        pipe = self._client.pipeline(transaction=False)
        pipe.execute_command("SELECT", self._index)
        return pipe


class Connection:
    """Fluently configured Redis connection with a lazily opened client.

    Setters mutate the instance and return it. The client is opened on the first
    data operation and reused for the lifetime of the connection, whatever
    database index later calls address.

    The current database index is shared state: calls that temporarily switch it
    (types decorated with ``redis_database``) must not overlap on one instance.
    """

    def __init__(
        self,
        host: str | None = DEFAULT_HOST,
        port: int | str | None = None,
        username: str | None = None,
        password: str | SecretStr | None = None,
    ) -> None:
        self.host: str = DEFAULT_HOST
        self.port: int | None = DEFAULT_PORT
        self.username: str | None = None
        self.password: str | None = None
        self.is_unix_socket = False
        self.use_ssl = False
        self.allow_admin = False
        self.database_index = 0
        self._serializer_settings = DEFAULT_SERIALIZER_SETTINGS
        self._serializer_locked = False
        self._client: Any | None = None
        self._client_lock = threading.Lock()
        self.with_host(host).with_port(port).with_username(username).with_password(password)

    # Configuration -----------------------------------------------------

    def with_host(self, host: str | None) -> Connection:
        """Set the endpoint from ``host``, ``host:port`` or a unix-socket path."""

        if not host or not host.strip():
            host = DEFAULT_HOST
        self.host = host
        self.is_unix_socket = False
        if ":" in host and not _names_file(host):
            name, _, port = host.rpartition(":")
            self.with_port(port)
            self.host = name or DEFAULT_HOST
        if _names_file(self.host):
            self.with_socket_flag(True)
            self.port = None
        return self

    def with_port(self, port: int | str | None) -> Connection:
        if port is None:
            return self
        if isinstance(port, str):
            if not port.strip():
                return self
            try:
                port = int(port)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid Redis port [{port}]", key="port") from exc
        self.port = port
        return self

    def with_username(self, username: str | None) -> Connection:
        self.username = username
        return self

    def with_password(self, password: str | SecretStr | None) -> Connection:
        if isinstance(password, SecretStr):
            password = password.get_secret_value()
        self.password = password
        return self

    def with_database_at_index(self, index: int) -> Connection:
        self.database_index = index
        return self

    def with_ssl_flag(self, flag: bool) -> Connection:
        self.use_ssl = flag
        return self

    def with_ssl(self) -> Connection:
        return self.with_ssl_flag(True)

    def without_ssl(self) -> Connection:
        return self.with_ssl_flag(False)

    def with_allow_admin_flag(self, flag: bool) -> Connection:
        self.allow_admin = flag
        return self

    def as_admin(self) -> Connection:
        return self.with_allow_admin_flag(True)

    def as_non_admin(self) -> Connection:
        return self.with_allow_admin_flag(False)

    def with_socket_flag(self, flag: bool) -> Connection:
        self.is_unix_socket = flag
        return self

    def with_socket(self, path: str | os.PathLike[str]) -> Connection:
        """Connect through the unix socket at ``path``."""

        self.host = os.fspath(path)
        self.port = None
        return self.with_socket_flag(True)

    def with_serializer_settings(self, settings: SerializerSettings | None = None) -> Connection:
        """Fix the JSON options used for writes; only the first choice sticks."""

        settings = settings or DEFAULT_SERIALIZER_SETTINGS
        if self._serializer_locked and settings != self._serializer_settings:
            raise ConfigurationError("Serializer settings cannot be changed once set")
        self._serializer_settings = settings
        self._serializer_locked = True
        return self

    def with_settings(self, settings: ConnectionSettings) -> Connection:
        """Apply a whole settings object."""

        self.with_allow_admin_flag(settings.allow_admin)
        self.with_database_at_index(settings.database)
        # Port first: a host:port or socket path in host overrides it.
        self.with_port(settings.port)
        self.with_host(settings.host)
        self.with_password(settings.password)
        self.with_ssl_flag(settings.use_ssl)
        self.with_username(settings.username)
        if settings.is_unix_socket:
            self.with_socket_flag(True)
            self.port = None
        return self

    @property
    def serializer_settings(self) -> SerializerSettings:
        return self._serializer_settings

    @property
    def connected(self) -> bool:
        return self._client is not None

    def build_options(self) -> ConnectionOptions:
        """Freeze the current configuration."""

        return ConnectionOptions(
            host=self.host,
            port=None if self.is_unix_socket else self.port,
            unix_socket_path=self.host if self.is_unix_socket else None,
            username=self.username if self.username and self.username.strip() else None,
            password=self.password if self.password and self.password.strip() else None,
            use_ssl=self.use_ssl,
            allow_admin=self.allow_admin,
        )

    # Databases ---------------------------------------------------------

    def database(self, index: int | None = None) -> Database:
        """Select ``index`` (or keep the current one) and return a view on it."""

        if index is not None:
            self.with_database_at_index(index)
        client = self._ensure_client()
        return Database(client, self.database_index, allow_admin=self.allow_admin)

    async def database_async(self, index: int | None = None) -> Database:
        if index is not None:
            self.with_database_at_index(index)
        client = await asyncio.to_thread(self._ensure_client)
        return Database(client, self.database_index, allow_admin=self.allow_admin)

    # Keyed access ------------------------------------------------------

    def get(self, key: str, type_: type[T] = str, allow_empty: bool = True) -> T:
        """Read ``key`` and decode it as ``type_``."""

        return self._typed(key, self.database().get(key), type_, allow_empty)

    async def get_async(self, key: str, type_: type[T] = str, allow_empty: bool = True) -> T:
        database = await self.database_async()
        return self._typed(key, await database.get_async(key), type_, allow_empty)

    def set(self, key: str, value: Any) -> Connection:
        """Write ``value`` under ``key``; ``None`` removes the key."""

        encoded = encode(value, self._serializer_settings)
        database = self.database()
        if encoded is None:
            database.delete(key)
        else:
            database.set(key, encoded)
        return self

    async def set_async(self, key: str, value: Any) -> Connection:
        encoded = encode(value, self._serializer_settings)
        database = await self.database_async()
        if encoded is None:
            await database.delete_async(key)
        else:
            await database.set_async(key, encoded)
        return self

    # Type-level access -------------------------------------------------

    def get_type(self, type_: type[T]) -> T:
        """Read ``type_`` from the key named by its ``RedisKey`` declaration."""

        with self._database_override(database_override(type_)):
            return bind_type(type_, RedisKey, self._resolve)

    async def get_type_async(self, type_: type[T]) -> T:
        with self._database_override(database_override(type_)):
            return await bind_type_async(type_, RedisKey, self._resolve_async)

    def set_type(self, obj: Any) -> Connection:
        """Write ``obj`` as JSON under its type's ``RedisKey`` declaration."""

        with self._database_override(database_override(type(obj))):
            unbind_type(obj, RedisKey, self._store, self._serializer_settings)
        return self

    async def set_type_async(self, obj: Any) -> Connection:
        with self._database_override(database_override(type(obj))):
            await unbind_type_async(obj, RedisKey, self._store_async, self._serializer_settings)
        return self

    def get_object(self, model: type[M]) -> M:
        """Populate ``model`` with one Redis key per ``RedisKey`` member."""

        with self._database_override(database_override(model)):
            return bind(model, RedisKey, self._resolve)

    async def get_object_async(self, model: type[M]) -> M:
        with self._database_override(database_override(model)):
            return await bind_async(model, RedisKey, self._resolve_async)

    def set_object(self, obj: BaseModel) -> Connection:
        with self._database_override(database_override(type(obj))):
            unbind(obj, RedisKey, self._store, self._serializer_settings)
        return self

    async def set_object_async(self, obj: BaseModel) -> Connection:
        with self._database_override(database_override(type(obj))):
            await unbind_async(obj, RedisKey, self._store_async, self._serializer_settings)
        return self

    # Internals ---------------------------------------------------------

    def _ensure_client(self) -> Any:
        client = self._client
        if client is not None:
            return client
        with self._client_lock:
            if self._client is None:
                options = self.build_options()
                self._client = self._open(options)
                LOG.info(
                    "Opened Redis client",
                    extra={"endpoint": options.endpoint, "ssl": options.use_ssl, "admin": options.allow_admin},
                )
            return self._client

    def _open(self, options: ConnectionOptions) -> Any:
        return redis.Redis(**options.client_kwargs())

    @contextmanager
    def _database_override(self, index: int | None) -> Iterator[None]:
        if index is None:
            yield
            return
        previous = self.database_index
        self.database_index = index
        try:
            yield
        finally:
            self.database_index = previous

    @staticmethod
    def _typed(key: str, raw: bytes | str | None, type_: type[T], allow_empty: bool) -> T:
        text = raw.decode() if isinstance(raw, bytes) else raw
        if text is None or not text.strip():
            if not allow_empty:
                raise ConfigurationError(f"Redis value cannot be empty [{key}]", key=key)
            if text is not None and type_ is str:
                return text  # type: ignore[return-value]
            return zero_value(type_)
        return decode(text, type_, key=key)

    def _resolve(self, binding: KeyBinding) -> str | None:
        raw = self.database().get(binding.external_name)
        return raw.decode() if isinstance(raw, bytes) else raw

    async def _resolve_async(self, binding: KeyBinding) -> str | None:
        database = await self.database_async()
        raw = await database.get_async(binding.external_name)
        return raw.decode() if isinstance(raw, bytes) else raw

    def _store(self, binding: KeyBinding, value: str | None) -> None:
        database = self.database()
        if value is None:
            database.delete(binding.external_name)
        else:
            database.set(binding.external_name, value)

    async def _store_async(self, binding: KeyBinding, value: str | None) -> None:
        database = await self.database_async()
        if value is None:
            await database.delete_async(binding.external_name)
        else:
            await database.set_async(binding.external_name, value)

    def __repr__(self) -> str:
        password = "********" if self.password else None
        return (
            f"{type(self).__name__}(host={self.host!r}, port={self.port!r}, username={self.username!r}, "
            f"password={password!r}, database={self.database_index}, ssl={self.use_ssl}, "
            f"socket={self.is_unix_socket}, admin={self.allow_admin})"
        )


class EnvironmentConnection(Connection):
    """Connection configured from environment variables."""

    settings_type: ClassVar[type[ConnectionSettings]] = EnvironmentConnectionSettings

    def __init__(
        self,
        settings_type: type[ConnectionSettings] | None = None,
        *,
        provider: EnvironmentProvider | None = None,
    ) -> None:
        super().__init__()
        source = provider or ENVIRONMENT
        self.with_settings(source.get_object(settings_type or self.settings_type))


class SecretsConnection(Connection):
    """Connection configured from the secrets directory."""

    settings_type: ClassVar[type[ConnectionSettings]] = SecretsConnectionSettings

    def __init__(
        self,
        settings_type: type[ConnectionSettings] | None = None,
        *,
        provider: SecretsProvider | None = None,
    ) -> None:
        super().__init__()
        source = provider or SECRETS
        self.with_settings(source.get_object(settings_type or self.settings_type))


class FileConnection(Connection):
    """Connection configured from a section of the TOML settings file."""

    def __init__(self, path: Path | None = None, section: str = DEFAULT_SECTION) -> None:
        super().__init__()
        self.with_settings(load_settings(path, section))


__all__ = [
    "Connection",
    "ConnectionOptions",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "Database",
    "EnvironmentConnection",
    "FileConnection",
    "SecretsConnection",
]
