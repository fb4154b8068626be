# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Conversion of received mail into Discord webhook messages.

The dispatch worker is given a ``MailConverter`` at construction time and
calls it for every mail it delivers. ``EmbedMailConverter`` is the default:
one embed with the sender, all recipients and the body.

Converters may raise; the worker reports the mail as failed and moves on.
In particular a body that is not valid UTF-8 raises ``UnicodeDecodeError``.
"""

from __future__ import annotations

from typing import Protocol

from .mail import Mail
from .models import EMBED_FIELD_VALUE_LIMIT, Embed, EmbedField, WebhookMessage

DEFAULT_TITLE = "New Email"
EMPTY_VALUE = "(empty)"
ELLIPSIS = "…"


class MailConverter(Protocol):
    def convert(self, mail: Mail) -> WebhookMessage: ...


def _field_value(value: str, limit: int = EMBED_FIELD_VALUE_LIMIT) -> str:
    """Fit ``value`` into a Discord embed field."""
    if not value.strip():
        return EMPTY_VALUE
    if len(value) > limit:
        return value[: limit - len(ELLIPSIS)] + ELLIPSIS
    return value


class EmbedMailConverter:
    """Render a mail as a single embed with From, To and Body fields.

    Attributes:
        title: Embed title.
        username: Optional display name override for the webhook message.
    """

    def __init__(self, title: str = DEFAULT_TITLE, username: str | None = None):
        self.title = title
        self.username = username

    def convert(self, mail: Mail) -> WebhookMessage:
        body = mail.body.decode("utf-8")
        embed = Embed(
            title=self.title,
            fields=[
                EmbedField(name="From", value=_field_value(mail.sender), inline=True),
                EmbedField(name="To", value=_field_value("\n".join(mail.recipients)), inline=True),
                EmbedField(name="Body", value=_field_value(body), inline=False),
            ],
        )
        return WebhookMessage(username=self.username, embeds=[embed])
