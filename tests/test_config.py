"""Tests for settings-file loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from confbind import config as config_module
from confbind.config import load_settings
from confbind.settings import ConnectionSettings


def test_load_settings_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    assert load_settings() == ConnectionSettings()


def test_load_settings_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
[redis]
host = "cache.internal"
port = 6380
username = "app"
password = "s3cret"
use_ssl = true
database = 3
unknown = "ignored"
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    settings = load_settings()

    assert settings.host == "cache.internal"
    assert settings.port == 6380
    assert settings.username == "app"
    assert settings.password is not None and settings.password.get_secret_value() == "s3cret"
    assert settings.use_ssl is True
    assert settings.allow_admin is False
    assert settings.database == 3


def test_load_settings_skips_values_of_the_wrong_type(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
[redis]
host = 42
port = "not a number"
use_ssl = "yes"
allow_admin = true
"""
    )

    settings = load_settings(config_path)

    assert settings.host is None
    assert settings.port is None
    assert settings.use_ssl is False
    assert settings.allow_admin is True


def test_load_settings_reads_nested_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
[services.cache]
host = "/var/run/redis.sock"
is_unix_socket = true
"""
    )

    settings = load_settings(config_path, "services.cache")

    assert settings.host == "/var/run/redis.sock"
    assert settings.is_unix_socket is True
    assert load_settings(config_path, "services.missing") == ConnectionSettings()


def test_load_settings_ignores_malformed_toml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[redis\nhost = ")

    assert load_settings(config_path) == ConnectionSettings()
