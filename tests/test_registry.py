"""Tests for the single-instance-per-type registry."""

from __future__ import annotations

import threading

import pytest

from confbind.errors import RegistryError
from confbind.registry import Registry


class _Service:
    def __init__(self, name: str = "default") -> None:
        self.name = name


class _OtherService(_Service):
    pass


def test_instance_stores_and_returns_the_same_object() -> None:
    registry = Registry()
    service = _Service()

    assert registry.instance(_Service, service) is service
    assert registry.instance(_Service) is service
    assert _Service in registry


def test_first_writer_wins() -> None:
    registry = Registry()
    first = _Service("first")

    registry.instance(_Service, first)
    result = registry.instance(_Service, _Service("second"))

    assert result is first
    assert registry.instance(_Service).name == "first"


def test_instances_are_keyed_by_exact_type() -> None:
    registry = Registry()
    registry.instance(_Service, _Service())

    assert _OtherService not in registry
    with pytest.raises(RegistryError):
        registry.instance(_OtherService)


def test_unregistered_type_raises() -> None:
    with pytest.raises(RegistryError):
        Registry().instance(_Service)


def test_get_or_create_runs_factory_once_under_contention() -> None:
    registry = Registry()
    calls: list[int] = []
    barrier = threading.Barrier(8)
    results: list[_Service] = []

    def _factory() -> _Service:
        calls.append(1)
        return _Service("created")

    def _worker() -> None:
        barrier.wait()
        results.append(registry.get_or_create(_Service, _factory))

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert all(result is results[0] for result in results)


def test_reset_forgets_instances() -> None:
    registry = Registry()
    registry.instance(_Service, _Service())

    registry.reset()

    assert _Service not in registry
