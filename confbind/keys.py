"""Key-binding declarations and the cached binding plans built from them.

Member bindings ride along as ``typing.Annotated`` metadata on pydantic fields::

    class CacheSettings(BaseModel):
        host: Annotated[str | None, EnvironmentVariable("CACHE_HOST")] = None

Type-level bindings are attached with the :func:`key_binding` decorator and name
a single external key that holds the whole object as JSON.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

from .errors import ConfigurationError

T = TypeVar("T")

_TYPE_BINDINGS_ATTR = "__confbind_keys__"
_DATABASE_ATTR = "__confbind_database__"


@dataclass(frozen=True, slots=True)
class KeyBinding:
    """External key name plus the policy for absent or blank values."""

    external_name: str
    allow_empty: bool = True


class EnvironmentVariable(KeyBinding):
    """Binds a member or type to a process environment variable."""


class SecretName(KeyBinding):
    """Binds a member or type to a file in the secrets directory."""


class RedisKey(KeyBinding):
    """Binds a member or type to a Redis string key."""


@dataclass(frozen=True, slots=True)
class RedisDatabase:
    """Database index a type is read from and written to."""

    index: int = -1


@dataclass(frozen=True, slots=True)
class MemberBinding:
    """One bindable member of a settings model."""

    name: str
    input_name: str
    annotation: Any
    binding: KeyBinding
    required: bool = False


def key_binding(*bindings: KeyBinding) -> Callable[[type[T]], type[T]]:
    """Class decorator attaching type-level key bindings."""

    def _decorate(cls: type[T]) -> type[T]:
        existing: tuple[KeyBinding, ...] = cls.__dict__.get(_TYPE_BINDINGS_ATTR, ())
        setattr(cls, _TYPE_BINDINGS_ATTR, existing + tuple(bindings))
        return cls

    return _decorate


def redis_database(index: int) -> Callable[[type[T]], type[T]]:
    """Class decorator forcing a database switch while the type is read or written."""

    def _decorate(cls: type[T]) -> type[T]:
        setattr(cls, _DATABASE_ATTR, RedisDatabase(index))
        return cls

    return _decorate


def type_bindings(target: type) -> tuple[KeyBinding, ...]:
    """Return every type-level binding declared on ``target``."""

    return tuple(getattr(target, _TYPE_BINDINGS_ATTR, ()))


def type_binding(target: type, kind: type[KeyBinding]) -> KeyBinding:
    """Return the single type-level binding of ``kind`` declared on ``target``."""

    matches = [binding for binding in type_bindings(target) if isinstance(binding, kind)]
    if not matches:
        raise ConfigurationError(f"{_type_name(target)} does not declare a {kind.__name__} binding")
    if len(matches) > 1:
        raise ConfigurationError(f"{_type_name(target)} declares more than one {kind.__name__} binding")
    return matches[0]


def database_override(target: type) -> int | None:
    """Return the database index declared on ``target``, if any."""

    declaration = getattr(target, _DATABASE_ATTR, None)
    if isinstance(declaration, RedisDatabase) and declaration.index >= 0:
        return declaration.index
    return None


_PLANS: dict[tuple[type, type[KeyBinding]], tuple[MemberBinding, ...]] = {}
_PLANS_LOCK = threading.Lock()


def binding_plan(model: type[BaseModel], kind: type[KeyBinding]) -> tuple[MemberBinding, ...]:
    """Return the ordered member bindings of ``kind`` on ``model``.

    Plans are built once per ``(model, kind)`` pair and shared afterwards. A model
    without any member of the requested kind is a configuration error.
    """

    key = (model, kind)
    plan = _PLANS.get(key)
    if plan is not None:
        return plan
    plan = _build_plan(model, kind)
    with _PLANS_LOCK:
        return _PLANS.setdefault(key, plan)


def clear_plans() -> None:
    """Drop cached binding plans (testing helper)."""

    with _PLANS_LOCK:
        _PLANS.clear()


def _build_plan(model: type[BaseModel], kind: type[KeyBinding]) -> tuple[MemberBinding, ...]:
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise ConfigurationError(f"{_type_name(model)} is not a pydantic model")
    members: list[MemberBinding] = []
    for name, field in model.model_fields.items():
        matches = [meta for meta in field.metadata if isinstance(meta, kind)]
        if not matches:
            continue
        if len(matches) > 1:
            raise ConfigurationError(
                f"{_type_name(model)}.{name} declares more than one {kind.__name__} binding"
            )
        members.append(
            MemberBinding(
                name=name,
                input_name=field.alias or name,
                annotation=field.annotation,
                binding=matches[0],
                required=field.is_required(),
            )
        )
    if not members:
        raise ConfigurationError(f"{_type_name(model)} does not declare any {kind.__name__} members")
    return tuple(members)


def _type_name(target: object) -> str:
    return getattr(target, "__qualname__", repr(target))


__all__ = [
    "EnvironmentVariable",
    "KeyBinding",
    "MemberBinding",
    "RedisDatabase",
    "RedisKey",
    "SecretName",
    "binding_plan",
    "clear_plans",
    "database_override",
    "key_binding",
    "redis_database",
    "type_binding",
    "type_bindings",
]
