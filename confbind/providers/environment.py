"""Environment-variable provider."""

from __future__ import annotations

import asyncio
import os
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
    unbind_type_async,
)
from ..codec import decode, encode, zero_value
from ..errors import ConfigurationError
from ..keys import EnvironmentVariable, KeyBinding

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")


class EnvironmentProvider:
    """Reads and writes process environment variables.

    Lookups hit ``os.environ`` every time; names are matched exactly. The async
    forms run the same calls in a worker thread.
    """

    kind = EnvironmentVariable

    def get(self, name: str, allow_empty: bool = True) -> str | None:
        value = os.environ.get(name)
        if value is None and not allow_empty:
            raise ConfigurationError(f"Environment variable cannot be empty [{name}]", key=name)
        return value

    async def get_async(self, name: str, allow_empty: bool = True) -> str | None:
        return await asyncio.to_thread(self.get, name, allow_empty)

    def get_as(self, name: str, type_: type[T], allow_empty: bool = True) -> T:
        """Fetch ``name`` and coerce it into ``type_``."""

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
        """Decode ``type_`` from the variable named by its type-level binding."""

        return bind_type(type_, self.kind, self._resolve)

    async def get_type_async(self, type_: type[T]) -> T:
        return await bind_type_async(type_, self.kind, self._resolve_async)

    def get_object(self, model: type[M]) -> M:
        """Populate ``model`` from its ``EnvironmentVariable`` members."""

        return bind(model, self.kind, self._resolve)

    async def get_object_async(self, model: type[M]) -> M:
        return await bind_async(model, self.kind, self._resolve_async)

    def set(self, name: str, value: str | None) -> None:
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value

    async def set_async(self, name: str, value: str | None) -> None:
        await asyncio.to_thread(self.set, name, value)

    def set_as(self, name: str, value: Any) -> None:
        self.set(name, encode(value))

    def set_type(self, obj: Any) -> None:
        unbind_type(obj, self.kind, self._store)

    async def set_type_async(self, obj: Any) -> None:
        await unbind_type_async(obj, self.kind, self._store_async)

    def set_object(self, obj: BaseModel) -> None:
        """Export every ``EnvironmentVariable`` member of ``obj``."""

        unbind(obj, self.kind, self._store)

    async def set_object_async(self, obj: BaseModel) -> None:
        await unbind_async(obj, self.kind, self._store_async)

    def _resolve(self, binding: KeyBinding) -> str | None:
        return self.get(binding.external_name, binding.allow_empty)

    async def _resolve_async(self, binding: KeyBinding) -> str | None:
        return await self.get_async(binding.external_name, binding.allow_empty)

    def _store(self, binding: KeyBinding, value: str | None) -> None:
        self.set(binding.external_name, value)

    async def _store_async(self, binding: KeyBinding, value: str | None) -> None:
        await self.set_async(binding.external_name, value)


ENVIRONMENT = EnvironmentProvider()


__all__ = ["ENVIRONMENT", "EnvironmentProvider"]
