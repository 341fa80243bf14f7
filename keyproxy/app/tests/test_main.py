"""
Unit Tests for the Application Factory
======================================

Tests for keyproxy/app/main.py

Test Coverage:
--------------
1. Key table loading when none is injected
2. Backend client lifecycle in the lifespan
3. Process entry point (port argument, fatal key table errors)
"""

import json

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient

from keyproxy.app import main as main_module
from keyproxy.app.config import Settings, get_settings
from keyproxy.app.errors import KeyTableError
from keyproxy.app.keys import KeyTable
from keyproxy.app.main import create_app, main


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def keys_path(tmp_path):
    path = tmp_path / "keys.json"
    path.write_text(
        json.dumps({"app-key-1": {"base_path": "http://backend:8081", "real_key": "real-key-1"}}),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def captured_run(monkeypatch):
    """Replace uvicorn.run and record its arguments"""
    calls = []

    def fake_run(app, **kwargs):
        calls.append((app, kwargs))

    monkeypatch.setattr(main_module.uvicorn, "run", fake_run)
    return calls


@pytest.fixture
def proxy_env(monkeypatch, keys_path):
    for name in ("PROXY_HOST", "PROXY_PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KEYS_FILE", str(keys_path))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Application Factory Tests
# ============================================================================

def test_create_app_loads_keys_file(keys_path):
    app = create_app(settings=Settings(_env_file=None, KEYS_FILE=str(keys_path)))

    table = app.state.app_state.key_table
    assert table.lookup("app-key-1").real_key == "real-key-1"


def test_create_app_fails_without_keys_file(tmp_path):
    with pytest.raises(KeyTableError):
        create_app(settings=Settings(_env_file=None, KEYS_FILE=str(tmp_path / "absent.json")))


def test_lifespan_creates_and_closes_backend_client():
    app = create_app(key_table=KeyTable({}), settings=Settings(_env_file=None))
    app_state = app.state.app_state
    assert app_state.backend_client is None

    with TestClient(app) as client:
        backend_client = app_state.backend_client
        assert isinstance(backend_client, httpx.AsyncClient)
        response = client.get("/anything")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    assert backend_client.is_closed
    assert app_state.backend_client is None


def test_lifespan_leaves_injected_client_open():
    injected = httpx.AsyncClient()
    app = create_app(key_table=KeyTable({}), backend_client=injected, settings=Settings(_env_file=None))

    with TestClient(app):
        assert app.state.app_state.backend_client is injected

    assert not injected.is_closed


def test_apps_do_not_share_state():
    first = create_app(key_table=KeyTable({}), settings=Settings(_env_file=None))
    second = create_app(key_table=KeyTable({}), settings=Settings(_env_file=None))

    assert first.state.app_state is not second.state.app_state


# ============================================================================
# Entry Point Tests
# ============================================================================

def test_main_uses_default_port(proxy_env, captured_run):
    main([])

    assert len(captured_run) == 1
    app, kwargs = captured_run[0]
    assert kwargs["port"] == 9080
    assert kwargs["host"] == "0.0.0.0"
    assert app.state.app_state.key_table.lookup("app-key-1") is not None


def test_main_port_argument_overrides_settings(proxy_env, captured_run, monkeypatch):
    monkeypatch.setenv("PROXY_PORT", "8181")
    get_settings.cache_clear()

    main(["9191"])

    assert captured_run[0][1]["port"] == 9191


def test_main_rejects_invalid_port(proxy_env, captured_run):
    with pytest.raises(SystemExit) as exc_info:
        main(["not-a-port"])

    assert exc_info.value.code == 2
    assert captured_run == []


def test_main_exits_when_key_table_cannot_load(proxy_env, captured_run, monkeypatch, tmp_path):
    monkeypatch.setenv("KEYS_FILE", str(tmp_path / "absent.json"))
    get_settings.cache_clear()

    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 1
    assert captured_run == []
