"""Populate settings models from any keyed string source."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from .codec import (
    DEFAULT_SERIALIZER_SETTINGS,
    Absent,
    ResolvedValue,
    SerializerSettings,
    StringValue,
    decode,
    encode,
    resolved,
    zero_value,
)
from .errors import BindingError, ConfigurationError
from .keys import KeyBinding, MemberBinding, binding_plan, type_binding

LOG = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

ValueGetter = Callable[[KeyBinding], "str | None"]
AsyncValueGetter = Callable[[KeyBinding], Awaitable["str | None"]]
ValueSetter = Callable[[KeyBinding, "str | None"], None]
AsyncValueSetter = Callable[[KeyBinding, "str | None"], Awaitable[None]]

_UNSET: Any = object()


def bind(model: type[M], kind: type[KeyBinding], value_getter: ValueGetter) -> M:
    """Build ``model`` by resolving each ``kind`` member through ``value_getter``."""

    plan = binding_plan(model, kind)
    values: dict[str, Any] = {}
    for member in plan:
        value = _member_value(member, resolved(value_getter(member.binding), member.binding))
        if value is not _UNSET:
            values[member.input_name] = value
    return _construct(model, values, len(plan))


async def bind_async(model: type[M], kind: type[KeyBinding], value_getter: AsyncValueGetter) -> M:
    """Async form of :func:`bind`; members are resolved one after another."""

    plan = binding_plan(model, kind)
    values: dict[str, Any] = {}
    for member in plan:
        raw = await value_getter(member.binding)
        value = _member_value(member, resolved(raw, member.binding))
        if value is not _UNSET:
            values[member.input_name] = value
    return _construct(model, values, len(plan))


def bind_type(target: type[T], kind: type[KeyBinding], value_getter: ValueGetter) -> T:
    """Decode the single value stored under ``target``'s type-level binding."""

    binding = type_binding(target, kind)
    return _type_value(target, resolved(value_getter(binding), binding))


async def bind_type_async(target: type[T], kind: type[KeyBinding], value_getter: AsyncValueGetter) -> T:
    binding = type_binding(target, kind)
    return _type_value(target, resolved(await value_getter(binding), binding))


def unbind(
    obj: BaseModel,
    kind: type[KeyBinding],
    value_setter: ValueSetter,
    settings: SerializerSettings = DEFAULT_SERIALIZER_SETTINGS,
) -> None:
    """Write every ``kind`` member of ``obj`` out through ``value_setter``."""

    for member in binding_plan(type(obj), kind):
        value_setter(member.binding, encode(getattr(obj, member.name), settings))


async def unbind_async(
    obj: BaseModel,
    kind: type[KeyBinding],
    value_setter: AsyncValueSetter,
    settings: SerializerSettings = DEFAULT_SERIALIZER_SETTINGS,
) -> None:
    for member in binding_plan(type(obj), kind):
        await value_setter(member.binding, encode(getattr(obj, member.name), settings))


def unbind_type(
    obj: Any,
    kind: type[KeyBinding],
    value_setter: ValueSetter,
    settings: SerializerSettings = DEFAULT_SERIALIZER_SETTINGS,
) -> None:
    """Write ``obj`` as one JSON value under its type-level binding."""

    binding = type_binding(type(obj), kind)
    value_setter(binding, encode(obj, settings))


async def unbind_type_async(
    obj: Any,
    kind: type[KeyBinding],
    value_setter: AsyncValueSetter,
    settings: SerializerSettings = DEFAULT_SERIALIZER_SETTINGS,
) -> None:
    binding = type_binding(type(obj), kind)
    await value_setter(binding, encode(obj, settings))


def _member_value(member: MemberBinding, value: ResolvedValue) -> Any:
    binding = member.binding
    if isinstance(value, Absent) or (isinstance(value, StringValue) and value.is_blank):
        if not binding.allow_empty:
            raise ConfigurationError(
                f"Value cannot be empty [{binding.external_name}]", key=binding.external_name
            )
        # Optional members keep their declared default.
        return zero_value(member.annotation) if member.required else _UNSET
    return decode(value.raw, member.annotation, key=binding.external_name)


def _type_value(target: type[T], value: ResolvedValue) -> T:
    binding = value.binding
    name = binding.external_name if binding else None
    if isinstance(value, Absent) or value.is_blank:
        if binding is not None and not binding.allow_empty:
            raise ConfigurationError(f"Value cannot be empty [{name}]", key=name)
        # Nothing stored under the type key.
        return None  # type: ignore[return-value]
    return decode(value.raw, target, key=name)


def _construct(model: type[M], values: dict[str, Any], member_count: int) -> M:
    try:
        instance = model.model_validate(values)
    except ValidationError as exc:
        raise BindingError(f"Cannot build {model.__qualname__}: {exc}", target=model) from exc
    LOG.debug(
        "Bound settings model",
        extra={"model": model.__qualname__, "members": member_count, "resolved": len(values)},
    )
    return instance


__all__ = [
    "AsyncValueGetter",
    "AsyncValueSetter",
    "ValueGetter",
    "ValueSetter",
    "bind",
    "bind_async",
    "bind_type",
    "bind_type_async",
    "unbind",
    "unbind_async",
    "unbind_type",
    "unbind_type_async",
]
