"""Tests for configuration loading from config.ini."""

from ipaddress import IPv4Address

import pytest

from smtp_discord_bridge.config_loader import ConfigError, load_config, parse_config
from smtp_discord_bridge.credentials import (
    ConflictingCredentialsError,
    MissingWebhookTokenError,
    WebhookIdentity,
)

BASE = """
[smtp]
listen_addr = 127.0.0.1
listen_port = 2525
"""


def test_load_full_config(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text(BASE + """
service_name = mail.example.com

[discord]
webhook_url = https://discord.com/api/webhooks/123/abc
request_timeout = 10
verify_on_start = false

[metrics]
listen_port = 9100
""")

    config = load_config(config_file)

    assert config.smtp.listen_addr == IPv4Address("127.0.0.1")
    assert config.smtp.listen_port == 2525
    assert config.smtp.display_name == "mail.example.com"
    assert config.discord.request_timeout == 10
    assert config.discord.verify_on_start is False
    assert config.metrics.enabled is True
    assert config.discord.resolve_identity() == WebhookIdentity(123, "abc")


def test_defaults():
    config = parse_config(BASE + "[discord]\nwebhook_id = 42\nwebhook_token = tok\n")

    assert config.smtp.service_name is None
    assert config.smtp.display_name == "DiscordMailer"
    assert config.discord.api_base == "https://discord.com/api"
    assert config.discord.verify_on_start is True
    assert config.metrics.enabled is False
    assert config.discord.resolve_identity() == WebhookIdentity(42, "tok")


def test_ipv6_listen_addr():
    config = parse_config("[smtp]\nlisten_addr = ::1\nlisten_port = 25\n[discord]\n")
    assert config.smtp.host == "::1"


def test_blank_values_are_absent():
    config = parse_config(BASE + "[discord]\nwebhook_id = 42\nwebhook_token =\n")

    assert config.discord.webhook_token is None
    with pytest.raises(MissingWebhookTokenError):
        config.discord.resolve_identity()


def test_credential_shape_is_checked_on_resolve():
    config = parse_config(
        BASE + "[discord]\nwebhook_url = https://discord.com/api/webhooks/1/a\nwebhook_id = 1\n"
    )
    with pytest.raises(ConflictingCredentialsError):
        config.discord.resolve_identity()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "nope.ini")
    assert "not found" in str(excinfo.value)
    assert excinfo.value.code == "config_error"


def test_unreadable_path(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unparsable_file(tmp_path):
    config_file = tmp_path / "bad.ini"
    config_file.write_text("listen_port = 25\n[smtp\n")

    with pytest.raises(ConfigError) as excinfo:
        load_config(config_file)
    assert "Cannot parse" in str(excinfo.value)


@pytest.mark.parametrize(
    "text, location",
    [
        ("[discord]\n", "smtp"),
        ("[smtp]\nlisten_addr = localhost\nlisten_port = 25\n[discord]\n", "smtp.listen_addr"),
        ("[smtp]\nlisten_addr = 0.0.0.0\nlisten_port = 70000\n[discord]\n", "smtp.listen_port"),
        (BASE + "[discord]\nwebhook_id = -5\n", "discord.webhook_id"),
        (BASE + f"[discord]\nwebhook_id = {2**64}\n", "discord.webhook_id"),
        (BASE + "[discord]\nwebhook_id = abc\n", "discord.webhook_id"),
        (BASE + "[discord]\nunknown_key = 1\n", "discord.unknown_key"),
        (BASE, "discord"),
    ],
)
def test_invalid_values(text, location):
    with pytest.raises(ConfigError) as excinfo:
        parse_config(text)
    assert location in str(excinfo.value)


def test_unknown_section_is_ignored():
    config = parse_config(BASE + "[discord]\n[extra]\nfoo = bar\n")
    assert config.smtp.listen_port == 2525
