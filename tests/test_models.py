"""Tests for pydantic configuration and payload models."""

import pytest
from pydantic import ValidationError

from smtp_discord_bridge.models import (
    DiscordConfig,
    Embed,
    EmbedField,
    SmtpConfig,
    WebhookMessage,
)


def test_smtp_config_port_range():
    assert SmtpConfig(listen_addr="0.0.0.0", listen_port=65535).listen_port == 65535
    with pytest.raises(ValidationError):
        SmtpConfig(listen_addr="0.0.0.0", listen_port=65536)


def test_discord_config_strips_api_base_slash():
    config = DiscordConfig(api_base="https://example.test/api/")
    assert config.api_base == "https://example.test/api"


def test_discord_config_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        DiscordConfig(webhook_secret="x")


def test_embed_field_limits():
    with pytest.raises(ValidationError):
        EmbedField(name="Body", value="")
    with pytest.raises(ValidationError):
        EmbedField(name="Body", value="x" * 1025)


def test_webhook_payload_uses_discord_field_names():
    message = WebhookMessage(
        content="hi",
        embeds=[Embed(title="T", embed_fields=[EmbedField(name="A", value="B")])],
    )

    assert message.to_payload() == {
        "content": "hi",
        "embeds": [{"title": "T", "fields": [{"name": "A", "value": "B", "inline": False}]}],
    }
