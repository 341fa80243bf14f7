"""
Unit Tests for Settings
=======================

Tests for keyproxy/app/config.py
"""

import pytest
from pydantic import ValidationError

from keyproxy.app.config import Settings, get_settings

SETTING_NAMES = ["PROXY_HOST", "PROXY_PORT", "KEYS_FILE", "LOG_LEVEL"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in SETTING_NAMES:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.PROXY_HOST == "0.0.0.0"
    assert settings.PROXY_PORT == 9080
    assert settings.KEYS_FILE == "keys.json"
    assert settings.LOG_LEVEL == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PROXY_PORT", "8181")
    monkeypatch.setenv("KEYS_FILE", "/etc/keyproxy/keys.json")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.PROXY_PORT == 8181
    assert settings.KEYS_FILE == "/etc/keyproxy/keys.json"
    assert settings.LOG_LEVEL == "DEBUG"


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PROXY_PORT=7070\n", encoding="utf-8")

    settings = Settings(_env_file=env_file)

    assert settings.PROXY_PORT == 7070


@pytest.mark.parametrize("port", ["0", "70000", "http"])
def test_invalid_port(monkeypatch, port):
    monkeypatch.setenv("PROXY_PORT", port)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "LOUD")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
