"""Unit tests for configuration loading and JWT secret validation."""

import json

import pytest

from refer_earn.config import (
    ConfigManager,
    ReferEarnConfig,
    _validate_jwt_secret_key,
)

STRONG_KEY = "Hq8Wz3Nc7Rv2Kp5Ym9Tb4Xf6Lg1Sd0Je"


@pytest.mark.unit
class TestJWTSecretValidation:
    @pytest.mark.parametrize(
        "key",
        ["", "short", "secret", "a" * 40, "abababababababababababababababab"],
    )
    def test_weak_keys_stop_the_process(self, key):
        with pytest.raises(SystemExit):
            _validate_jwt_secret_key(key)

    def test_strong_key_passes(self):
        _validate_jwt_secret_key(STRONG_KEY)


@pytest.mark.unit
class TestConfigManager:
    @pytest.fixture
    def manager(self, monkeypatch):
        for name in [
            "REFER_EARN_DATABASE_URL",
            "DATABASE_URL",
            "REFER_EARN_DEBUG",
            "REFER_EARN_CONFIG_FILE",
            "REFER_EARN_PASSWORD_HASH_ITERATIONS",
            "REFER_EARN_ACCESS_TOKEN_MINUTES",
            "REFER_EARN_CREATE_SCHEMA",
        ]:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("REFER_EARN_JWT_SECRET_KEY", STRONG_KEY)
        return ConfigManager()

    def test_defaults(self, manager):
        config = manager.load_config()

        assert config.database.url == "sqlite:///./refer_earn.db"
        assert config.database.create_schema is True
        assert config.app.password_hash_iterations == 120_000
        assert config.app.auth_cookie_name == "token"
        assert config.app.jwt_secret_key == STRONG_KEY

    def test_environment_overrides(self, manager, monkeypatch):
        monkeypatch.setenv("REFER_EARN_DATABASE_URL", "sqlite:///./other.db")
        monkeypatch.setenv("REFER_EARN_DEBUG", "true")
        monkeypatch.setenv("REFER_EARN_PASSWORD_HASH_ITERATIONS", "5000")
        monkeypatch.setenv("REFER_EARN_ACCESS_TOKEN_MINUTES", "15")
        monkeypatch.setenv("REFER_EARN_CREATE_SCHEMA", "0")

        config = manager.load_config()

        assert config.database.url == "sqlite:///./other.db"
        assert config.server.debug is True
        assert config.app.log_level == "DEBUG"
        assert config.app.password_hash_iterations == 5000
        assert config.app.jwt_access_token_expires_minutes == 15
        assert config.database.create_schema is False

    def test_malformed_integer_is_ignored(self, manager, monkeypatch):
        monkeypatch.setenv("REFER_EARN_PASSWORD_HASH_ITERATIONS", "lots")

        assert manager.load_config().app.password_hash_iterations == 120_000

    def test_generates_secret_when_missing(self, manager, monkeypatch):
        monkeypatch.delenv("REFER_EARN_JWT_SECRET_KEY")

        config = manager.load_config()

        assert len(config.app.jwt_secret_key) >= 64

    def test_config_is_cached_until_reset(self, manager, monkeypatch):
        first = manager.load_config()
        monkeypatch.setenv("REFER_EARN_DATABASE_URL", "sqlite:///./changed.db")

        assert manager.load_config() is first

        manager.reset()
        assert manager.load_config().database.url == "sqlite:///./changed.db"

    def test_file_then_environment(self, manager, monkeypatch, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(
            json.dumps({"server": {"port": 7001}, "app": {"log_dir": "custom-logs"}})
        )
        monkeypatch.setenv("REFER_EARN_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("REFER_EARN_PORT", "7002")

        config = manager.load_config()

        assert config.app.log_dir == "custom-logs"
        assert config.server.port == 7002

    def test_save_and_reload(self, manager, monkeypatch, tmp_path):
        config_file = tmp_path / "nested" / "config.json"
        monkeypatch.setenv("REFER_EARN_CONFIG_FILE", str(config_file))
        config = manager.load_config()
        config.server.port = 7100

        assert manager.save_config() is True

        saved = ReferEarnConfig.from_dict(json.loads(config_file.read_text()))
        assert saved.server.port == 7100

    def test_save_without_file_fails(self, manager):
        manager.load_config()

        assert manager.save_config() is False
