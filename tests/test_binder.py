"""Tests for the settings binder."""

from __future__ import annotations

from typing import Annotated

import pytest
from pydantic import BaseModel, SecretStr

from confbind.binder import bind, bind_async, bind_type, bind_type_async, unbind, unbind_type
from confbind.errors import BindingError, ConfigurationError
from confbind.keys import KeyBinding, RedisKey, SecretName, key_binding


class _Limits(BaseModel):
    burst: int
    per_second: float


class _ServiceSettings(BaseModel):
    url: Annotated[str | None, RedisKey("svc:url")] = None
    retries: Annotated[int, RedisKey("svc:retries")] = 3
    verbose: Annotated[bool, RedisKey("svc:verbose")] = False
    limits: Annotated[_Limits | None, RedisKey("svc:limits")] = None
    token: Annotated[str, RedisKey("svc:token", allow_empty=False)] = ""
    comment: str = "not bound"


@key_binding(RedisKey("svc:snapshot"))
class _Snapshot(BaseModel):
    name: str
    limits: _Limits


class _Getter:
    def __init__(self, values: dict[str, str]) -> None:
        self.values = values
        self.calls: list[str] = []

    def __call__(self, binding: KeyBinding) -> str | None:
        self.calls.append(binding.external_name)
        return self.values.get(binding.external_name)


def test_bind_coerces_each_member() -> None:
    getter = _Getter(
        {
            "svc:url": "https://example.test",
            "svc:retries": "5",
            "svc:verbose": "true",
            "svc:limits": '{"burst": 10, "per_second": 2.5}',
            "svc:token": "abc",
        }
    )

    settings = bind(_ServiceSettings, RedisKey, getter)

    assert settings.url == "https://example.test"
    assert settings.retries == 5
    assert settings.verbose is True
    assert settings.limits == _Limits(burst=10, per_second=2.5)
    assert settings.token == "abc"
    assert settings.comment == "not bound"
    assert getter.calls == ["svc:url", "svc:retries", "svc:verbose", "svc:limits", "svc:token"]


def test_bind_keeps_defaults_for_absent_optional_values() -> None:
    settings = bind(_ServiceSettings, RedisKey, _Getter({"svc:token": "abc"}))

    assert settings.url is None
    assert settings.retries == 3
    assert settings.limits is None


def test_bind_rejects_absent_required_value() -> None:
    with pytest.raises(ConfigurationError) as info:
        bind(_ServiceSettings, RedisKey, _Getter({}))

    assert info.value.key == "svc:token"


def test_bind_rejects_blank_required_value() -> None:
    with pytest.raises(ConfigurationError):
        bind(_ServiceSettings, RedisKey, _Getter({"svc:token": "   "}))


def test_bind_without_declarations_never_calls_the_getter() -> None:
    getter = _Getter({})

    with pytest.raises(ConfigurationError):
        bind(_ServiceSettings, SecretName, getter)

    assert getter.calls == []


def test_bind_reports_uncoercible_values() -> None:
    getter = _Getter({"svc:token": "abc", "svc:retries": "many"})

    with pytest.raises(BindingError) as info:
        bind(_ServiceSettings, RedisKey, getter)

    assert info.value.key == "svc:retries"


def test_required_member_without_default_gets_zero_value() -> None:
    class _Counter(BaseModel):
        count: Annotated[int, RedisKey("counter")]

    assert bind(_Counter, RedisKey, _Getter({})).count == 0


def test_required_members_of_any_type_get_zero_values() -> None:
    class _Named(BaseModel):
        name: Annotated[str, RedisKey("name")]
        tags: Annotated[list[str], RedisKey("tags")]
        token: Annotated[SecretStr, RedisKey("token")]
        limits: Annotated[_Limits, RedisKey("limits")]

    named = bind(_Named, RedisKey, _Getter({"name": "  "}))

    assert named.name == ""
    assert named.tags == []
    assert named.token.get_secret_value() == ""
    assert isinstance(named.limits, _Limits)


def test_bind_type_decodes_the_whole_object() -> None:
    getter = _Getter({"svc:snapshot": '{"name": "primary", "limits": {"burst": 1, "per_second": 0.5}}'})

    snapshot = bind_type(_Snapshot, RedisKey, getter)

    assert snapshot.name == "primary"
    assert snapshot.limits.burst == 1


def test_bind_type_absent_value_yields_none() -> None:
    assert bind_type(_Snapshot, RedisKey, _Getter({})) is None


def test_bind_type_without_declaration_never_calls_the_getter() -> None:
    getter = _Getter({})

    with pytest.raises(ConfigurationError):
        bind_type(_Limits, RedisKey, getter)

    assert getter.calls == []


def test_unbind_writes_encoded_members() -> None:
    written: dict[str, str | None] = {}
    settings = _ServiceSettings(url="u", retries=7, limits=_Limits(burst=2, per_second=1.0), token="t")

    unbind(settings, RedisKey, lambda binding, value: written.__setitem__(binding.external_name, value))

    assert written == {
        "svc:url": "u",
        "svc:retries": "7",
        "svc:verbose": "false",
        "svc:limits": '{"burst":2,"per_second":1.0}',
        "svc:token": "t",
    }


def test_unbind_type_writes_one_value() -> None:
    written: dict[str, str | None] = {}
    snapshot = _Snapshot(name="n", limits=_Limits(burst=1, per_second=1.0))

    unbind_type(snapshot, RedisKey, lambda binding, value: written.__setitem__(binding.external_name, value))

    assert bind_type(_Snapshot, RedisKey, lambda binding: written[binding.external_name]) == snapshot


@pytest.mark.anyio
async def test_bind_async_matches_sync_semantics() -> None:
    values = {"svc:token": "abc", "svc:retries": "9"}

    async def _getter(binding: KeyBinding) -> str | None:
        return values.get(binding.external_name)

    settings = await bind_async(_ServiceSettings, RedisKey, _getter)
    snapshot = await bind_type_async(_Snapshot, RedisKey, _getter)

    assert settings.retries == 9
    assert settings.token == "abc"
    assert snapshot is None


@pytest.mark.anyio
async def test_bind_async_rejects_absent_required_value() -> None:
    async def _getter(binding: KeyBinding) -> str | None:
        return None

    with pytest.raises(ConfigurationError):
        await bind_async(_ServiceSettings, RedisKey, _getter)
