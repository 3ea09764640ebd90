"""
Unit tests for configuration loading.
"""

import pytest

from key_rotator.core.config import (
    ConfigLoader,
    RotatorConfig,
    normalize_prefix,
    parse_api_keys,
)
from key_rotator.core.constants import DEFAULT_UPSTREAM_BASE_URL
from key_rotator.core.errors import ConfigurationError


class TestParseApiKeys:
    """Test cases for parse_api_keys."""

    def test_comma_separated(self):
        assert parse_api_keys("a, b ,c") == ["a", "b", "c"]

    def test_blank_entries_dropped(self):
        assert parse_api_keys(" a,, ,b, ") == ["a", "b"]

    def test_json_array(self):
        assert parse_api_keys('["a", "b"]') == ["a", "b"]

    def test_invalid_json(self):
        with pytest.raises(ConfigurationError):
            parse_api_keys('["a", ')

    def test_json_must_be_strings(self):
        with pytest.raises(ConfigurationError):
            parse_api_keys("[1, 2]")

    def test_empty(self):
        assert parse_api_keys("") == []


class TestRotatorConfig:
    """Test cases for RotatorConfig."""

    def test_empty_keys_fail_fast(self):
        with pytest.raises(ConfigurationError):
            RotatorConfig(api_keys=())

    def test_keys_stored_as_tuple(self):
        config = RotatorConfig(api_keys=["a", "b"])
        assert config.api_keys == ("a", "b")

    def test_defaults(self):
        config = RotatorConfig(api_keys=("a",))
        assert config.upstream_base_url == DEFAULT_UPSTREAM_BASE_URL
        assert config.access_token is None
        assert config.cooldown_seconds == 3600
        assert config.gate_enabled is False

    def test_blank_token_disables_gate(self):
        assert RotatorConfig(api_keys=("a",), access_token="").gate_enabled is False

    def test_immutable(self):
        config = RotatorConfig(api_keys=("a",))
        with pytest.raises(AttributeError):
            config.upstream_base_url = "https://other.test"

    def test_secrets_not_in_repr(self):
        config = RotatorConfig(api_keys=("super-secret-key",), access_token="tok-123")
        assert "super-secret-key" not in repr(config)
        assert "tok-123" not in repr(config)


class TestConfigLoader:
    """Test cases for ConfigLoader."""

    def test_load_rotator_config(self):
        loader = ConfigLoader(
            {
                "API_KEYS": '["k1", "k2"]',
                "GEMINI_API_BASE_URL": "https://proxy.test/v1",
                "ACCESS_TOKEN": "secret",
                "KEY_COOLDOWN_SECONDS": "90",
                "UPSTREAM_TIMEOUT_SECONDS": "15.5",
                "HONOR_RETRY_AFTER": "yes",
            }
        )
        config = loader.load_rotator_config()

        assert config.api_keys == ("k1", "k2")
        assert config.upstream_base_url == "https://proxy.test/v1"
        assert config.access_token == "secret"
        assert config.cooldown_seconds == 90
        assert config.upstream_timeout == 15.5
        assert config.honor_retry_after is True

    def test_defaults_from_minimal_environment(self):
        config = ConfigLoader({"API_KEYS": "k1"}).load_rotator_config()
        assert config.upstream_base_url == DEFAULT_UPSTREAM_BASE_URL
        assert config.access_token is None
        assert config.honor_retry_after is False

    def test_missing_keys(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader({}).load_rotator_config()

    def test_bad_number(self):
        loader = ConfigLoader({"API_KEYS": "k1", "KEY_COOLDOWN_SECONDS": "soon"})
        with pytest.raises(ConfigurationError):
            loader.load_rotator_config()

    def test_server_settings(self):
        settings = ConfigLoader(
            {"API_PREFIX": "proxy/", "PORT": "9000", "LOG_LEVEL": "debug"}
        ).load_server_settings()

        assert settings.api_prefix == "/proxy"
        assert settings.port == 9000
        assert settings.log_level == "DEBUG"

    def test_server_settings_defaults(self):
        settings = ConfigLoader({}).load_server_settings()
        assert settings.api_prefix == "/api"
        assert settings.port == 8000


@pytest.mark.parametrize(
    "raw,expected",
    [("/api", "/api"), ("api/", "/api"), ("/", ""), ("", ""), ("/v1/proxy", "/v1/proxy")],
)
def test_normalize_prefix(raw, expected):
    assert normalize_prefix(raw) == expected
