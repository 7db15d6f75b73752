"""Shared fixtures: an in-memory Redis stand-in and process-state resets."""

from __future__ import annotations

from typing import Any, Iterator

import pytest

from confbind.keys import clear_plans
from confbind.providers import SECRETS
from confbind.registry import REGISTRY


class FakePipeline:
    def __init__(self, server: "FakeRedis") -> None:
        self._server = server
        self._commands: list[tuple[Any, ...]] = []

    def execute_command(self, *args: Any) -> "FakePipeline":
        self._commands.append(args)
        return self

    def get(self, key: str) -> "FakePipeline":
        return self.execute_command("GET", key)

    def set(self, key: str, value: str | bytes) -> "FakePipeline":
        return self.execute_command("SET", key, value)

    def delete(self, key: str) -> "FakePipeline":
        return self.execute_command("DEL", key)

    def flushdb(self) -> "FakePipeline":
        return self.execute_command("FLUSHDB")

    def execute(self) -> list[Any]:
        if self._server.fail_with is not None:
            raise self._server.fail_with
        selected = 0
        results: list[Any] = []
        for command, *args in self._commands:
            store = self._server.databases.setdefault(selected, {})
            if command == "SELECT":
                selected = int(args[0])
                self._server.selects.append(selected)
                results.append(True)
            elif command == "GET":
                results.append(store.get(args[0]))
            elif command == "SET":
                value = args[1]
                store[args[0]] = value.encode() if isinstance(value, str) else value
                results.append(True)
            elif command == "DEL":
                results.append(1 if store.pop(args[0], None) is not None else 0)
            elif command == "FLUSHDB":
                store.clear()
                results.append(True)
        return results


class FakeRedis:
    """Minimal stand-in for ``redis.Redis`` supporting pipelined string commands."""

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.databases: dict[int, dict[str, bytes]] = {}
        self.selects: list[int] = []
        self.fail_with: Exception | None = None

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        assert transaction is False
        return FakePipeline(self)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> list[FakeRedis]:
    """Replace the Redis client class; returns every client opened."""

    opened: list[FakeRedis] = []

    def _open(**kwargs: Any) -> FakeRedis:
        client = FakeRedis(**kwargs)
        opened.append(client)
        return client

    monkeypatch.setattr("confbind.connections.redis.Redis", _open)
    return opened


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    yield
    REGISTRY.reset()
    SECRETS.reset()
    clear_plans()
