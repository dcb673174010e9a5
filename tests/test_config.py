"""
Tests for environment configuration.

Usage:
    pytest tests/test_config.py -v
"""

import pytest

from scamguard.config import EngineConfig, RedisConfig, Settings, get_env, get_env_bool, get_env_int


class TestEnvHelpers:

    def test_required_missing(self, monkeypatch):
        monkeypatch.delenv("SCAM_TEST_VALUE", raising=False)
        with pytest.raises(ValueError):
            get_env("SCAM_TEST_VALUE", required=True)

    def test_int_parsing(self, monkeypatch):
        monkeypatch.setenv("SCAM_TEST_INT", "12")
        assert get_env_int("SCAM_TEST_INT", 3) == 12

        monkeypatch.setenv("SCAM_TEST_INT", "twelve")
        with pytest.raises(ValueError):
            get_env_int("SCAM_TEST_INT", 3)

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("off", False), ("no", False)])
    def test_bool_parsing(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SCAM_TEST_BOOL", raw)
        assert get_env_bool("SCAM_TEST_BOOL", not expected) is expected


class TestEngineConfig:

    def test_defaults(self, monkeypatch):
        for key in ("SCAM_PREFERENCE_BACKEND", "SCAM_DEFAULT_USER_ID", "SCAM_ANALYZER_TIMEOUT_SECONDS"):
            monkeypatch.delenv(key, raising=False)
        config = EngineConfig()

        assert config.preference_backend == "memory"
        assert config.default_user_id == "default"
        assert config.timeout is None

    def test_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("SCAM_PREFERENCE_BACKEND", "Redis")
        assert EngineConfig().preference_backend == "redis"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(preference_backend="mongo")

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(analyzer_timeout_seconds=-1)

    def test_timeout(self):
        assert EngineConfig(analyzer_timeout_seconds=2.5).timeout == 2.5


class TestSettings:

    def test_redis_fallback_off_by_default(self, monkeypatch):
        monkeypatch.delenv("REDIS_FALLBACK_TO_MEMORY", raising=False)
        assert RedisConfig().fallback_to_memory is False

    def test_postgres_requires_password(self, monkeypatch):
        monkeypatch.delenv("DATABASE_PASSWORD", raising=False)
        with pytest.raises(ValueError):
            Settings(engine=EngineConfig(preference_backend="postgres"))
