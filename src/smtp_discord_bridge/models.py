# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the bridge configuration and webhook payloads.

Models:
    - SmtpConfig: Listener address and greeting name of the SMTP server
    - DiscordConfig: Webhook credentials and transport options
    - MetricsConfig: Optional Prometheus HTTP exporter
    - BridgeConfig: Complete configuration file
    - EmbedField, Embed, WebhookMessage: Discord execute-webhook payload
"""

from __future__ import annotations

from ipaddress import IPv4Address
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator

from .credentials import MAX_WEBHOOK_ID, WebhookIdentity, resolve_identity

DEFAULT_SERVICE_NAME = "DiscordMailer"
DEFAULT_API_BASE = "https://discord.com/api"

# Discord embed limits
EMBED_TITLE_LIMIT = 256
EMBED_FIELD_NAME_LIMIT = 256
EMBED_FIELD_VALUE_LIMIT = 1024
EMBED_FIELD_COUNT_LIMIT = 25


class SmtpConfig(BaseModel):
    """``[smtp]`` section: where the SMTP server listens.

    Attributes:
        listen_addr: IP address to bind.
        listen_port: TCP port to bind.
        service_name: Hostname announced in the SMTP greeting.
    """

    model_config = ConfigDict(extra="forbid")

    listen_addr: Annotated[
        IPvAnyAddress,
        Field(description="IP address to listen on")
    ]
    listen_port: Annotated[
        int,
        Field(ge=0, le=65535, description="TCP port to listen on")
    ]
    service_name: Annotated[
        str | None,
        Field(default=None, description="Server name returned to SMTP clients")
    ]

    @property
    def display_name(self) -> str:
        return self.service_name or DEFAULT_SERVICE_NAME

    @property
    def host(self) -> str:
        return str(self.listen_addr)


class DiscordConfig(BaseModel):
    """``[discord]`` section: webhook credentials and transport options.

    Either ``webhook_url`` or the ``webhook_id`` + ``webhook_token`` pair must
    be given. The combination is checked by :meth:`resolve_identity`, not by
    field validation, so every invalid shape maps to its own error.
    """

    model_config = ConfigDict(extra="forbid")

    webhook_url: Annotated[
        str | None,
        Field(default=None, description="Full Discord webhook URL")
    ]
    webhook_id: Annotated[
        int | None,
        Field(default=None, ge=0, le=MAX_WEBHOOK_ID, description="Discord webhook id")
    ]
    webhook_token: Annotated[
        str | None,
        Field(default=None, description="Discord webhook token")
    ]
    api_base: Annotated[
        str,
        Field(default=DEFAULT_API_BASE, description="Discord API base URL")
    ]
    request_timeout: Annotated[
        float | None,
        Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    ]
    verify_on_start: Annotated[
        bool,
        Field(default=True, description="Fetch the webhook once before serving")
    ]

    @field_validator("api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def resolve_identity(self) -> WebhookIdentity:
        """Resolve the configured credentials.

        Raises:
            CredentialError: If the credential fields have an invalid shape.
        """
        return resolve_identity(self.webhook_url, self.webhook_id, self.webhook_token)


class MetricsConfig(BaseModel):
    """``[metrics]`` section: Prometheus exporter, disabled without a port."""

    model_config = ConfigDict(extra="forbid")

    listen_addr: Annotated[
        IPvAnyAddress,
        Field(default=IPv4Address("127.0.0.1"), description="Exporter bind address")
    ]
    listen_port: Annotated[
        int | None,
        Field(default=None, ge=0, le=65535, description="Exporter port")
    ]

    @property
    def enabled(self) -> bool:
        return self.listen_port is not None


class BridgeConfig(BaseModel):
    """Complete bridge configuration."""

    model_config = ConfigDict(extra="forbid")

    smtp: SmtpConfig
    discord: DiscordConfig
    metrics: Annotated[
        MetricsConfig,
        Field(default_factory=MetricsConfig)
    ]


class EmbedField(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=EMBED_FIELD_NAME_LIMIT)]
    value: Annotated[str, Field(min_length=1, max_length=EMBED_FIELD_VALUE_LIMIT)]
    inline: bool = False


class Embed(BaseModel):
    """Rich embed attached to a webhook message."""

    model_config = ConfigDict(populate_by_name=True)

    title: Annotated[
        str | None,
        Field(default=None, max_length=EMBED_TITLE_LIMIT)
    ]
    description: str | None = None
    embed_fields: Annotated[
        list[EmbedField],
        Field(default_factory=list, max_length=EMBED_FIELD_COUNT_LIMIT, alias="fields")
    ]


class WebhookMessage(BaseModel):
    """Payload of a Discord execute-webhook call.

    Attributes:
        content: Plain message text.
        username: Overrides the webhook's default display name.
        embeds: Rich embeds (at most 10).
    """

    content: str | None = None
    username: str | None = None
    embeds: Annotated[
        list[Embed],
        Field(default_factory=list, max_length=10)
    ]

    def to_payload(self) -> dict:
        """Return the JSON body for the Discord API, without unset fields."""
        return self.model_dump(exclude_none=True, by_alias=True)


__all__ = [
    "BridgeConfig",
    "DiscordConfig",
    "Embed",
    "EmbedField",
    "MetricsConfig",
    "SmtpConfig",
    "WebhookMessage",
]
