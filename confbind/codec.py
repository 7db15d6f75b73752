"""String <-> value coercion shared by the binder and the Redis connection."""

from __future__ import annotations

import types
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Union, get_args, get_origin

from pydantic import BaseModel, SecretStr, TypeAdapter, ValidationError

from .errors import BindingError
from .keys import KeyBinding


@dataclass(frozen=True, slots=True)
class Absent:
    """No value was found under the requested key."""

    binding: KeyBinding | None = None


@dataclass(frozen=True, slots=True)
class StringValue:
    """Raw string fetched from a provider."""

    raw: str
    binding: KeyBinding | None = None

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()


@dataclass(frozen=True, slots=True)
class DecodedValue:
    """Successfully coerced value."""

    value: Any


ResolvedValue = Absent | StringValue


@dataclass(frozen=True, slots=True)
class SerializerSettings:
    """Options forwarded to pydantic when objects are written as JSON."""

    by_alias: bool = False
    exclude_none: bool = False
    exclude_defaults: bool = False
    indent: int | None = None

    def dump_kwargs(self) -> dict[str, Any]:
        return {
            "by_alias": self.by_alias,
            "exclude_none": self.exclude_none,
            "exclude_defaults": self.exclude_defaults,
            "indent": self.indent,
        }


DEFAULT_SERIALIZER_SETTINGS = SerializerSettings()


def resolved(raw: str | None, binding: KeyBinding | None = None) -> ResolvedValue:
    """Tag a raw provider result."""

    if raw is None:
        return Absent(binding)
    return StringValue(raw, binding)


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _decode_structured(raw: str, target: Any) -> DecodedValue | None:
    try:
        return DecodedValue(_adapter(target).validate_json(raw))
    except ValidationError:
        return None


def _parse_scalar(raw: str, target: Any) -> DecodedValue | None:
    try:
        return DecodedValue(_adapter(target).validate_python(raw))
    except ValidationError:
        return None


_SCALAR_ZEROS = (bool, int, float, str, bytes)
_CONTAINER_ZEROS = (list, tuple, set, frozenset, dict)

CoercionStrategy = Callable[[str, Any], "DecodedValue | None"]

COERCION_STRATEGIES: tuple[CoercionStrategy, ...] = (_decode_structured, _parse_scalar)


def decode(raw: str, target: Any, *, key: str | None = None) -> Any:
    """Coerce ``raw`` into ``target``: JSON decode first, then scalar parsing."""

    for strategy in COERCION_STRATEGIES:
        decoded = strategy(raw, target)
        if decoded is not None:
            return decoded.value
    label = f" [{key}]" if key else ""
    raise BindingError(f"Cannot convert value{label} to {_type_label(target)}", key=key, target=target)


def zero_value(target: Any) -> Any:
    """Value used when an absent key is allowed to be empty.

    Optionals read as ``None``. Scalars, strings and containers get their empty
    value, and models get their all-defaults instance (built without validation
    when some field has no default). Anything else reads as ``None``.
    """

    if _is_optional(target):
        return None
    if target in _SCALAR_ZEROS:
        return target()
    if target is SecretStr:
        return SecretStr("")
    origin = get_origin(target) or target
    if origin in _CONTAINER_ZEROS:
        return origin()
    if isinstance(target, type) and issubclass(target, BaseModel):
        try:
            return target.model_validate({})
        except ValidationError:
            return target.model_construct()
    return None


def encode(value: Any, settings: SerializerSettings = DEFAULT_SERIALIZER_SETTINGS) -> str | None:
    """Render ``value`` as the string stored under a key."""

    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    if isinstance(value, BaseModel):
        return value.model_dump_json(**settings.dump_kwargs())
    return _adapter(type(value)).dump_json(value, **settings.dump_kwargs()).decode()


def _is_optional(target: Any) -> bool:
    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(target)
    return target is None or target is type(None)


def _type_label(target: Any) -> str:
    return getattr(target, "__qualname__", repr(target))


__all__ = [
    "Absent",
    "COERCION_STRATEGIES",
    "DEFAULT_SERIALIZER_SETTINGS",
    "DecodedValue",
    "ResolvedValue",
    "SerializerSettings",
    "StringValue",
    "decode",
    "encode",
    "resolved",
    "zero_value",
]
