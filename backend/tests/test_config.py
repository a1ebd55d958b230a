"""config 環境變數讀取測試。"""

from __future__ import annotations

import pytest

from linebot_studio import config


def test_get_env_int_and_float(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STUDIO_TEST_INT", "42")
    monkeypatch.setenv("STUDIO_TEST_BAD", "abc")
    monkeypatch.setenv("STUDIO_TEST_FLOAT", "2.5")

    assert config._get_env_int("STUDIO_TEST_INT", 1) == 42
    assert config._get_env_int("STUDIO_TEST_BAD", 1) == 1
    assert config._get_env_int("STUDIO_TEST_MISSING", 7) == 7
    assert config._get_env_float("STUDIO_TEST_FLOAT", 1.0) == 2.5
    assert config._get_env_float("STUDIO_TEST_BAD", 1.0) == 1.0


def test_get_env_bool(monkeypatch: pytest.MonkeyPatch):
    for value in ("1", "true", "YES", " on "):
        monkeypatch.setenv("STUDIO_TEST_BOOL", value)
        assert config._get_env_bool("STUDIO_TEST_BOOL") is True
    monkeypatch.setenv("STUDIO_TEST_BOOL", "off")
    assert config._get_env_bool("STUDIO_TEST_BOOL", True) is False
    monkeypatch.delenv("STUDIO_TEST_BOOL")
    assert config._get_env_bool("STUDIO_TEST_BOOL", True) is True


def test_get_env_list(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STUDIO_TEST_LIST", "gemini-pro, gemini-1.5-flash ,,")
    assert config._get_env_list("STUDIO_TEST_LIST", ["x"]) == ["gemini-pro", "gemini-1.5-flash"]
    monkeypatch.setenv("STUDIO_TEST_LIST", "")
    assert config._get_env_list("STUDIO_TEST_LIST", ["x"]) == ["x"]


def test_settings_defaults():
    settings = config.Settings()
    assert settings.gemini_api_versions[0] == "v1beta"
    assert settings.webhook_dispatch_timeout > 0
    assert settings.db_pool_min_size <= settings.db_pool_max_size
