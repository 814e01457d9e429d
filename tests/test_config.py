"""Tests for weather_pulse.config module."""

import os
import tempfile

import pytest

from weather_pulse.config import PulseConfig
from weather_pulse.errors import ConfigError


class TestPulseConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        config = PulseConfig()
        assert config.max_cache_entries == 100
        assert config.default_ttl_ms == 600000
        assert config.max_retry_attempts == 3
        assert config.base_retry_delay_ms == 1000
        assert config.max_retry_delay_ms == 30000
        assert config.poll_interval_fast == 180000
        assert config.poll_interval_medium == 300000
        assert config.poll_interval_slow == 600000
        assert config.memory_pressure_threshold == 0.8
        assert config.fallback_mode == "stale"

    def test_retry_config(self):
        retry = PulseConfig(max_retry_attempts=5, base_retry_delay_ms=200).retry_config()
        assert retry.max_attempts == 5
        assert retry.base_delay_ms == 200
        assert retry.max_delay_ms == 30000

    def test_polling_policy(self):
        policy = PulseConfig(poll_interval_fast=1000, memory_pressure_threshold=0.5).polling_policy()
        assert policy.fast_ms == 1000
        assert policy.medium_ms == 300000
        assert policy.memory_pressure_threshold == 0.5


class TestPulseConfigValidation:
    """Out-of-range values are rejected."""

    @pytest.mark.parametrize("kwargs", [
        {"max_cache_entries": 0},
        {"default_ttl_ms": 0},
        {"max_retry_attempts": -1},
        {"fallback_mode": "guess"},
        {"memory_pressure_threshold": 1.5},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            PulseConfig(**kwargs)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            PulseConfig(max_cache_entries=-3)


class TestPulseConfigFromDict:
    """Sectioned dictionary loading."""

    def test_empty_dict_gives_defaults(self, monkeypatch):
        monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
        config = PulseConfig.from_dict({})
        assert config == PulseConfig()

    def test_sections(self):
        config = PulseConfig.from_dict({
            "api": {"url": "https://example.test", "key": "abc", "timeout_s": 3},
            "cache": {"max_entries": 20, "default_ttl_ms": 5000},
            "retry": {"max_attempts": 1, "base_delay_ms": 50},
            "polling": {"fast_ms": 60000, "low_power_ms": 900000},
            "fallback": {"mode": "SYNTHETIC"},
            "rate_limit": {"enabled": False, "requests_per_minute": 10},
            "logging": {"level": "DEBUG", "file": "pulse.log"},
        })
        assert config.api_url == "https://example.test"
        assert config.api_key == "abc"
        assert config.request_timeout == 3
        assert config.max_cache_entries == 20
        assert config.default_ttl_ms == 5000
        assert config.max_retry_attempts == 1
        assert config.base_retry_delay_ms == 50
        assert config.poll_interval_fast == 60000
        assert config.poll_interval_low_power == 900000
        assert config.fallback_mode == "synthetic"
        assert config.rate_limit_enabled is False
        assert config.rate_limit_rpm == 10
        assert config.log_level == "DEBUG"
        assert config.log_file == "pulse.log"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENWEATHER_API_KEY", "from-env")
        assert PulseConfig.from_dict({}).api_key == "from-env"
        assert PulseConfig.from_dict({"api": {"key": "explicit"}}).api_key == "explicit"

    def test_invalid_section_value(self):
        with pytest.raises(ConfigError):
            PulseConfig.from_dict({"fallback": {"mode": "random"}})


class TestPulseConfigFiles:
    """YAML load/save."""

    def test_load_yaml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("cache:\n  max_entries: 5\nfallback:\n  mode: none\n")
            path = f.name
        try:
            config = PulseConfig.load(path)
            assert config.max_cache_entries == 5
            assert config.fallback_mode == "none"
        finally:
            os.unlink(path)

    def test_load_empty_file(self, monkeypatch):
        monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            path = f.name
        try:
            assert PulseConfig.load(path) == PulseConfig()
        finally:
            os.unlink(path)

    def test_load_missing_file(self):
        with pytest.raises(FileNotFoundError):
            PulseConfig.load("/nonexistent/pulse.yaml")

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "pulse.yaml")
        original = PulseConfig(api_key="k", max_cache_entries=42, fallback_mode="synthetic")
        original.save(path)
        assert PulseConfig.load(path) == original
