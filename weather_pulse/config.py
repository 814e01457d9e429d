"""
Weather Pulse configuration handling.

Provides YAML configuration loading and validation.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml

from .errors import ConfigError

FALLBACK_MODES = ("stale", "synthetic", "none")

DEFAULT_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@dataclass
class PulseConfig:
    """
    Weather Pulse configuration.

    Can be loaded from a YAML file or created programmatically.
    All durations ending in ``_ms`` are milliseconds.
    """
    # Upstream API
    api_url: str = "https://api.openweathermap.org/data/2.5"
    api_key: str = ""
    request_timeout: float = 10.0  # seconds
    units: str = "metric"
    lang: str = "en"
    default_city: str = "London"
    country_code: str = "GB"

    # Cache
    max_cache_entries: int = 100
    default_ttl_ms: int = 600000  # 10 minutes

    # Retry
    max_retry_attempts: int = 3
    base_retry_delay_ms: int = 1000
    max_retry_delay_ms: int = 30000
    retry_jitter_ms: int = 1000

    # Polling
    poll_interval_fast: int = 180000
    poll_interval_medium: int = 300000
    poll_interval_slow: int = 600000
    poll_interval_low_power: int = 600000
    memory_pressure_threshold: float = 0.8

    # Degraded mode on terminal failure: stale | synthetic | none
    fallback_mode: str = "stale"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_rpm: int = 60  # requests per minute
    rate_limit_burst: int = 10

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_format: str = DEFAULT_LOG_FORMAT
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 3

    def __post_init__(self) -> None:
        if self.max_cache_entries <= 0:
            raise ConfigError("max_cache_entries must be greater than 0")
        if self.default_ttl_ms <= 0:
            raise ConfigError("default_ttl_ms must be greater than 0")
        if self.max_retry_attempts < 0:
            raise ConfigError("max_retry_attempts must not be negative")
        if self.fallback_mode not in FALLBACK_MODES:
            raise ConfigError(
                f"fallback_mode must be one of {', '.join(FALLBACK_MODES)}, "
                f"got {self.fallback_mode!r}"
            )
        if not 0.0 <= self.memory_pressure_threshold <= 1.0:
            raise ConfigError("memory_pressure_threshold must be within [0, 1]")

    @classmethod
    def load(cls, path: str) -> "PulseConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            PulseConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
            ConfigError: If a value is out of range
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PulseConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary (sectioned, see ``to_dict``)

        Returns:
            PulseConfig instance
        """
        api_cfg = data.get("api", {})
        cache_cfg = data.get("cache", {})
        retry_cfg = data.get("retry", {})
        polling_cfg = data.get("polling", {})
        fallback_cfg = data.get("fallback", {})
        rate_limit_cfg = data.get("rate_limit", {})
        logging_cfg = data.get("logging", {})

        return cls(
            api_url=api_cfg.get("url", "https://api.openweathermap.org/data/2.5"),
            api_key=api_cfg.get("key") or os.environ.get("OPENWEATHER_API_KEY", ""),
            request_timeout=api_cfg.get("timeout_s", 10.0),
            units=api_cfg.get("units", "metric"),
            lang=api_cfg.get("lang", "en"),
            default_city=api_cfg.get("default_city", "London"),
            country_code=api_cfg.get("country_code", "GB"),
            max_cache_entries=cache_cfg.get("max_entries", 100),
            default_ttl_ms=cache_cfg.get("default_ttl_ms", 600000),
            max_retry_attempts=retry_cfg.get("max_attempts", 3),
            base_retry_delay_ms=retry_cfg.get("base_delay_ms", 1000),
            max_retry_delay_ms=retry_cfg.get("max_delay_ms", 30000),
            retry_jitter_ms=retry_cfg.get("jitter_ms", 1000),
            poll_interval_fast=polling_cfg.get("fast_ms", 180000),
            poll_interval_medium=polling_cfg.get("medium_ms", 300000),
            poll_interval_slow=polling_cfg.get("slow_ms", 600000),
            poll_interval_low_power=polling_cfg.get("low_power_ms", 600000),
            memory_pressure_threshold=polling_cfg.get("memory_pressure_threshold", 0.8),
            fallback_mode=str(fallback_cfg.get("mode", "stale")).lower(),
            rate_limit_enabled=rate_limit_cfg.get("enabled", True),
            rate_limit_rpm=rate_limit_cfg.get("requests_per_minute", 60),
            rate_limit_burst=rate_limit_cfg.get("burst", 10),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file", ""),
            log_format=logging_cfg.get("format", DEFAULT_LOG_FORMAT),
            log_max_bytes=logging_cfg.get("max_bytes", 10485760),
            log_backup_count=logging_cfg.get("backup_count", 3),
        )

    def retry_config(self) -> "RetryConfig":
        """Build the retry policy configuration."""
        from .utils.retry import RetryConfig

        return RetryConfig(
            max_attempts=self.max_retry_attempts,
            base_delay_ms=self.base_retry_delay_ms,
            max_delay_ms=self.max_retry_delay_ms,
            jitter_ms=self.retry_jitter_ms,
        )

    def polling_policy(self) -> "PollingPolicy":
        """Build the scheduler's interval policy."""
        from .scheduler import PollingPolicy

        return PollingPolicy(
            fast_ms=self.poll_interval_fast,
            medium_ms=self.poll_interval_medium,
            slow_ms=self.poll_interval_slow,
            low_power_ms=self.poll_interval_low_power,
            memory_pressure_threshold=self.memory_pressure_threshold,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary
        """
        return {
            "api": {
                "url": self.api_url,
                "key": self.api_key,
                "timeout_s": self.request_timeout,
                "units": self.units,
                "lang": self.lang,
                "default_city": self.default_city,
                "country_code": self.country_code,
            },
            "cache": {
                "max_entries": self.max_cache_entries,
                "default_ttl_ms": self.default_ttl_ms,
            },
            "retry": {
                "max_attempts": self.max_retry_attempts,
                "base_delay_ms": self.base_retry_delay_ms,
                "max_delay_ms": self.max_retry_delay_ms,
                "jitter_ms": self.retry_jitter_ms,
            },
            "polling": {
                "fast_ms": self.poll_interval_fast,
                "medium_ms": self.poll_interval_medium,
                "slow_ms": self.poll_interval_slow,
                "low_power_ms": self.poll_interval_low_power,
                "memory_pressure_threshold": self.memory_pressure_threshold,
            },
            "fallback": {
                "mode": self.fallback_mode,
            },
            "rate_limit": {
                "enabled": self.rate_limit_enabled,
                "requests_per_minute": self.rate_limit_rpm,
                "burst": self.rate_limit_burst,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
                "format": self.log_format,
                "max_bytes": self.log_max_bytes,
                "backup_count": self.log_backup_count,
            },
        }

    def save(self, path: str) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Path to save the configuration file
        """
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True)
