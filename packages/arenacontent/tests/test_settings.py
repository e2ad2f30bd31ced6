from __future__ import annotations

import sys
import types

from arenacontent.core.runtime.settings import DEFAULT_CONTROLLER_URL, Settings, load_settings


def test_defaults():
    s = Settings()
    assert s.content_root == "/workspace-content"
    assert s.controller_url == DEFAULT_CONTROLLER_URL
    assert s.dev_artifact_prefixes == ["http://localhost:8082"]
    assert s.fetch_timeout == 10.0
    assert s.max_file_bytes == 10 * 1024 * 1024


def test_from_env_snapshot():
    s = Settings.from_env(
        {
            "ARENA_CONTENT_ROOT": "/data",
            "ARENA_DEV_ARTIFACT_PREFIXES": "http://localhost:8082, http://127.0.0.1:8082",
            "ARENA_FETCH_TIMEOUT": "2.5",
            "ARENA_FETCH_RETRIES": "3",
            "ARENA_CATALOG_PATH": "/catalog",
            "ARENA_LOG_FORMAT": "json",
        }
    )
    assert s.content_root == "/data"
    assert s.dev_artifact_prefixes == ["http://localhost:8082", "http://127.0.0.1:8082"]
    assert (s.fetch_timeout, s.fetch_retries) == (2.5, 3)
    assert s.catalog_path == "/catalog"
    assert s.log_format == "json"


def test_workspace_content_path_fallback():
    assert Settings.from_env({"WORKSPACE_CONTENT_PATH": "/wc"}).content_root == "/wc"
    assert Settings.from_env({"WORKSPACE_CONTENT_PATH": "/wc", "ARENA_CONTENT_ROOT": "/ac"}).content_root == "/ac"


def test_load_settings_layers(monkeypatch):
    mod = types.ModuleType("arena_test_settings_mod")
    mod.SETTINGS = {"fetch_retries": 5, "content_root": "/from-module"}
    monkeypatch.setitem(sys.modules, "arena_test_settings_mod", mod)

    s = load_settings(
        {"content_root": "/override"},
        env={"ARENA_SETTINGS_MODULE": "arena_test_settings_mod", "ARENA_FETCH_RETRIES": "1"},
    )
    assert s.fetch_retries == 5
    assert s.content_root == "/override"
