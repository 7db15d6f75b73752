"""Secrets-directory provider (Docker and Kubernetes mounted secrets)."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from ..binder import (
    bind,
    bind_async,
    bind_type,
    bind_type_async,
    unbind,
    unbind_async,
    unbind_type,
)
from ..codec import decode, encode, zero_value
from ..errors import ConfigurationError
from ..keys import KeyBinding, SecretName

LOG = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")


def default_secrets_directory() -> str:
    """Platform default mount point for secrets."""

    if sys.platform.startswith("win"):
        return os.path.join(os.sep, "ProgramData", "Docker", "secrets")
    return os.path.join(os.sep, "run", "secrets")


class SecretsProvider:
    """Name/value map loaded once from a directory of secret files.

    The first read lists the directory and caches every file's trimmed contents.
    Nothing invalidates that cache afterwards except :meth:`reset`.
    """

    kind = SecretName

    def __init__(self, secrets_directory: str | os.PathLike[str] | None = None) -> None:
        self._directory = os.path.abspath(secrets_directory or default_secrets_directory())
        self._values: dict[str, str] = {}
        self._populated = False
        self._lock = threading.Lock()

    @property
    def secrets_directory(self) -> str:
        return self._directory

    @property
    def populated(self) -> bool:
        return self._populated

    def set_secrets_directory(self, path: str | os.PathLike[str]) -> None:
        """Point the provider at another directory; does not trigger a read."""

        self._directory = os.path.abspath(path)

    def get(self, name: str, allow_empty: bool = True) -> str | None:
        self._ensure_populated()
        value = self._values.get(self._normalize(name))
        if value is None or not value.strip():
            if not allow_empty:
                raise ConfigurationError(f"Secret cannot be empty [{name}]", key=name)
            return None
        return value

    async def get_async(self, name: str, allow_empty: bool = True) -> str | None:
        return await asyncio.to_thread(self.get, name, allow_empty)

    def get_as(self, name: str, type_: type[T], allow_empty: bool = True) -> T:
        value = self.get(name, allow_empty)
        if value is None:
            return zero_value(type_)
        return decode(value, type_, key=name)

    async def get_as_async(self, name: str, type_: type[T], allow_empty: bool = True) -> T:
        value = await self.get_async(name, allow_empty)
        if value is None:
            return zero_value(type_)
        return decode(value, type_, key=name)

    def get_type(self, type_: type[T]) -> T:
        return bind_type(type_, self.kind, self._resolve)

    async def get_type_async(self, type_: type[T]) -> T:
        return await bind_type_async(type_, self.kind, self._resolve_async)

    def get_object(self, model: type[M]) -> M:
        """Populate ``model`` from its ``SecretName`` members."""

        return bind(model, self.kind, self._resolve)

    async def get_object_async(self, model: type[M]) -> M:
        return await bind_async(model, self.kind, self._resolve_async)

    def set(self, name: str, value: str) -> None:
        """Write a secret through to disk (best effort) and into the cache."""

        key = self._normalize(name)
        try:
            Path(self._directory, key).write_text(value)
        except OSError as exc:
            LOG.warning(
                "Could not persist secret; keeping it in memory only",
                extra={"secret": key, "error": str(exc)},
            )
        with self._lock:
            self._values[key] = value

    async def set_async(self, name: str, value: str) -> None:
        await asyncio.to_thread(self.set, name, value)

    def set_as(self, name: str, value: Any) -> None:
        self.set(name, encode(value) or "")

    def set_type(self, obj: Any) -> None:
        unbind_type(obj, self.kind, self._store)

    def set_object(self, obj: BaseModel) -> None:
        unbind(obj, self.kind, self._store)

    async def set_object_async(self, obj: BaseModel) -> None:
        await unbind_async(obj, self.kind, self._store_async)

    def reset(self) -> None:
        """Forget cached secrets so the next read scans again (testing helper)."""

        with self._lock:
            self._values.clear()
            self._populated = False

    def _ensure_populated(self) -> None:
        if self._populated:
            return
        with self._lock:
            if self._populated:
                return
            scanned = self._scan_directory()
            # Values set before the first read win over what is on disk.
            scanned.update(self._values)
            self._values = scanned
            self._populated = True
        LOG.info(
            "Loaded secrets",
            extra={"directory": self._directory, "count": len(scanned)},
        )

    def _scan_directory(self) -> dict[str, str]:
        directory = Path(self._directory)
        if not directory.is_dir():
            LOG.warning("Secrets directory not found", extra={"directory": self._directory})
            return {}
        values: dict[str, str] = {}
        for entry in sorted(directory.iterdir()):
            if not entry.is_file():
                continue
            values[self._normalize(str(entry))] = entry.read_text().strip()
        return values

    def _normalize(self, name: str) -> str:
        normalized = name.lower().replace(self._directory.lower(), "")
        return normalized.lstrip(os.sep).lstrip("/")

    def _resolve(self, binding: KeyBinding) -> str | None:
        return self.get(binding.external_name, binding.allow_empty)

    async def _resolve_async(self, binding: KeyBinding) -> str | None:
        return await self.get_async(binding.external_name, binding.allow_empty)

    def _store(self, binding: KeyBinding, value: str | None) -> None:
        self.set(binding.external_name, value or "")

    async def _store_async(self, binding: KeyBinding, value: str | None) -> None:
        await self.set_async(binding.external_name, value or "")


SECRETS = SecretsProvider()


__all__ = ["SECRETS", "SecretsProvider", "default_secrets_directory"]
