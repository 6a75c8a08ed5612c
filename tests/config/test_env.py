"""Tests for environment-driven configuration helpers."""

import pytest

from holdingpen.config import env


class TestStringToBool:

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", " yes ", "on"])
    def test_truthy(self, value):
        assert env.string_to_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off", ""])
    def test_falsy(self, value):
        assert env.string_to_bool(value) is False

    def test_missing_uses_default(self):
        assert env.string_to_bool(None, default=True) is True


class TestEnvHelpers:

    def test_prefix(self, monkeypatch):
        monkeypatch.setenv("HOLDINGPEN_TARGET_BUCKET", "  my-pen ")
        assert env._env("TARGET_BUCKET", "holding-pen") == "my-pen"

    def test_int_falls_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("HOLDINGPEN_WORKERS", "many")
        assert env._env_int("WORKERS", 4) == 4

    def test_int(self, monkeypatch):
        monkeypatch.setenv("HOLDINGPEN_WORKERS", "12")
        assert env._env_int("WORKERS", 4) == 12

    def test_float(self, monkeypatch):
        monkeypatch.setenv("HOLDINGPEN_REQUEST_TIMEOUT", "2.5")
        assert env._env_float("REQUEST_TIMEOUT", 30.0) == 2.5

    def test_list(self, monkeypatch):
        monkeypatch.setenv("HOLDINGPEN_EXCLUDE_BUCKETS", "a, b,,c ")
        assert env._env_list("EXCLUDE_BUCKETS") == ["a", "b", "c"]

    def test_empty_list(self, monkeypatch):
        monkeypatch.delenv("HOLDINGPEN_EXCLUDE_BUCKETS", raising=False)
        assert env._env_list("EXCLUDE_BUCKETS") == []


class TestDefaults:

    def test_timeouts(self):
        assert env.DELETE_TIMEOUT > 0
        assert env.REQUEST_TIMEOUT > 0

    def test_engine_bounds(self):
        assert env.STREAM_CAPACITY >= 1
        assert env.DEFAULT_WORKERS >= 1
