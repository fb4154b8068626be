# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for the SMTP to Discord bridge.

The configuration is an INI file with one section per concern. Values are
validated with the pydantic models in :mod:`smtp_discord_bridge.models`.

Example:
    Configuration file format (config.ini)::

        [smtp]
        listen_addr = 0.0.0.0
        listen_port = 2525
        service_name = mail.example.com

        [discord]
        # Either the full webhook URL ...
        webhook_url = https://discord.com/api/webhooks/123/abc
        # ... or its two parts
        # webhook_id = 123
        # webhook_token = abc
        request_timeout = 30
        verify_on_start = true

        [metrics]
        # Prometheus exporter, disabled when no port is given
        listen_port = 9100

    Loading it::

        config = load_config("/etc/smtp-discord-bridge/config.ini")
        identity = config.discord.resolve_identity()

Blank values are treated as absent, so ``webhook_token =`` behaves exactly
like a missing key.
"""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .logger import get_logger
from .models import BridgeConfig

SECTIONS = ("smtp", "discord", "metrics")

logger = get_logger("ConfigLoader")


class ConfigError(Exception):
    """Raised when the configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "config_error"


def _section_values(config: configparser.ConfigParser, section: str) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in config.items(section):
        value = value.strip()
        if value:
            values[key] = value
    return values


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def parse_config(text: str, source: str = "<string>") -> BridgeConfig:
    """Parse configuration from INI text.

    Args:
        text: INI document.
        source: Name used in error messages.

    Returns:
        The validated ``BridgeConfig``.

    Raises:
        ConfigError: If the text is not valid INI or fails validation.
    """
    config = configparser.ConfigParser(interpolation=None)
    try:
        config.read_string(text, source=source)
    except configparser.Error as exc:
        raise ConfigError(f"Cannot parse {source}: {exc}") from exc

    data: dict[str, dict[str, Any]] = {}
    for section in config.sections():
        if section not in SECTIONS:
            logger.warning(f"Ignoring unknown section [{section}] in {source}")
            continue
        data[section] = _section_values(config, section)

    try:
        return BridgeConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {source}: {_format_validation_error(exc)}") from exc


def load_config(config_path: str | Path) -> BridgeConfig:
    """Read and validate the configuration file.

    Args:
        config_path: Path to the INI configuration file.

    Returns:
        The validated ``BridgeConfig``.

    Raises:
        ConfigError: If the file is missing, unreadable, unparsable or invalid.
    """
    path = Path(config_path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    config = parse_config(text, source=str(path))
    logger.info(f"Loaded configuration from {path}")
    return config
