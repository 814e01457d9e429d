"""
Logging configuration utilities for Weather Pulse.

Root logger to stdout, optionally mirrored to a rotating file. The HTTP
client libraries log every request at INFO; they are held at WARNING unless
the configured level is DEBUG, so a poller running for hours stays readable.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from ..config import DEFAULT_LOG_FORMAT, PulseConfig

HTTP_LOGGERS = ("httpx", "httpcore")


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def _install_handlers(
    level: int,
    log_format: str,
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 3,
) -> None:
    formatter = logging.Formatter(log_format)
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def setup_logging(config: Optional[PulseConfig] = None) -> None:
    """
    Configure logging from PulseConfig.

    Args:
        config: PulseConfig instance. If None, INFO to stdout.

    Example:
        setup_logging(PulseConfig.load("pulse.yaml"))
    """
    if config is None:
        _install_handlers(logging.INFO, DEFAULT_LOG_FORMAT)
        return

    _install_handlers(
        _level(config.log_level),
        config.log_format,
        config.log_file or None,
        config.log_max_bytes,
        config.log_backup_count,
    )


def setup_logging_from_dict(config_dict: Dict[str, Any]) -> None:
    """Configure logging from the ``logging`` section of a config file."""
    _install_handlers(
        _level(config_dict.get("level", "INFO")),
        config_dict.get("format", DEFAULT_LOG_FORMAT),
        config_dict.get("file"),
        config_dict.get("max_bytes", 10485760),
        config_dict.get("backup_count", 3),
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)
