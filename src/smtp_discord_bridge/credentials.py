# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Discord webhook credential resolution.

A webhook is identified by a numeric id and a secret token. Configuration may
supply them either as a full webhook URL or as the two separate values, but
never both. ``resolve_identity`` applies the decision table below and either
returns a ``WebhookIdentity`` or raises a specific ``CredentialError``:

    ===== ===== ===== ===========================
    url   id    token result
    ===== ===== ===== ===========================
    -     -     -     NoCredentialsError
    -     -     yes   MissingWebhookIdError
    -     yes   -     MissingWebhookTokenError
    -     yes   yes   WebhookIdentity(id, token)
    yes   -     -     parse_webhook_url(url)
    yes   yes   any   ConflictingCredentialsError
    yes   any   yes   ConflictingCredentialsError
    ===== ===== ===== ===========================

Only the URL path is inspected; scheme and host are not validated because
Discord has moved between hostnames before. The expected layout is::

    https://discord.com/api/webhooks/<id>/<token>

Example:
    >>> resolve_identity(url="https://discord.com/api/webhooks/123/abc")
    WebhookIdentity(id=123, token='abc')
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

MAX_WEBHOOK_ID = 2**64 - 1

_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class WebhookIdentity:
    """Resolved webhook id and token.

    Attributes:
        id: Discord webhook id, any unsigned 64-bit value including 0.
        token: Discord webhook secret token.
    """

    id: int
    token: str

    def __post_init__(self) -> None:
        if not 0 <= self.id <= MAX_WEBHOOK_ID:
            raise ValueError(f"Webhook id out of range: {self.id}")
        if not self.token:
            raise ValueError("Webhook token must not be empty")

    def __repr__(self) -> str:
        # Tokens are secrets, show at most a prefix
        token = self.token if len(self.token) <= 8 else f"{self.token[:4]}..."
        return f"WebhookIdentity(id={self.id}, token={token!r})"


class CredentialError(Exception):
    """Raised when the webhook credentials in the configuration are unusable."""

    code = "credential_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__.strip().splitlines()[0])


class NoCredentialsError(CredentialError):
    """Neither a webhook URL nor a webhook id and token were specified."""

    code = "no_credentials"


class MissingWebhookIdError(CredentialError):
    """A webhook token was specified without a webhook id."""

    code = "missing_webhook_id"


class MissingWebhookTokenError(CredentialError):
    """A webhook id was specified without a webhook token."""

    code = "missing_webhook_token"


class ConflictingCredentialsError(CredentialError):
    """A webhook URL cannot be combined with a webhook id or token."""

    code = "conflicting_params"


class WebhookUrlError(CredentialError):
    """The webhook URL does not have the expected layout."""

    code = "url_error"


class UrlParseError(WebhookUrlError):
    """The webhook URL could not be parsed."""

    code = "url_parse_error"


class UrlMissingPathError(WebhookUrlError):
    """The webhook URL has no path."""

    code = "url_missing_path"


class UrlMissingApiError(WebhookUrlError):
    """The webhook URL path does not start with /api."""

    code = "url_missing_api"


class UrlMissingWebhooksError(WebhookUrlError):
    """The webhook URL path does not continue with /api/webhooks."""

    code = "url_missing_webhooks"


class UrlMissingIdError(WebhookUrlError):
    """The webhook URL path is missing /api/webhooks/<id>."""

    code = "url_missing_id"


class WebhookIdParseError(WebhookUrlError):
    """The webhook id in the URL is not an unsigned 64-bit integer."""

    code = "id_parse_error"


class UrlMissingTokenError(WebhookUrlError):
    """The webhook URL path is missing /api/webhooks/<id>/<token>."""

    code = "url_missing_token"


def _parse_webhook_id(value: str) -> int:
    if not _DIGITS.fullmatch(value):
        raise WebhookIdParseError(f"Invalid webhook id {value!r}: not a number")
    webhook_id = int(value)
    if webhook_id > MAX_WEBHOOK_ID:
        raise WebhookIdParseError(f"Invalid webhook id {value!r}: out of range")
    return webhook_id


def parse_webhook_url(url: str) -> WebhookIdentity:
    """Extract the webhook id and token from a Discord webhook URL.

    Args:
        url: Full webhook URL, e.g. ``https://discord.com/api/webhooks/ID/TOKEN``.

    Returns:
        The resolved ``WebhookIdentity``.

    Raises:
        WebhookUrlError: One of its subclasses, naming the path segment
            that is missing or malformed.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError as exc:
        raise UrlParseError(f"Invalid webhook URL: {exc}") from exc
    if not parts.scheme:
        raise UrlParseError(f"Invalid webhook URL {url!r}: relative URL without a scheme")

    # An authority-based URL always has at least the root path
    path = parts.path or ("/" if parts.netloc else "")
    if not path.startswith("/"):
        raise UrlMissingPathError(f"Webhook URL {url!r} has no path")

    segments = iter(path[1:].split("/"))
    if next(segments, None) != "api":
        raise UrlMissingApiError()
    if next(segments, None) != "webhooks":
        raise UrlMissingWebhooksError()

    id_segment = next(segments, None)
    if id_segment is None:
        raise UrlMissingIdError()
    webhook_id = _parse_webhook_id(id_segment)

    token = next(segments, None)
    if not token:
        raise UrlMissingTokenError()
    return WebhookIdentity(webhook_id, token)


def resolve_identity(
    url: str | None = None,
    webhook_id: int | None = None,
    token: str | None = None,
) -> WebhookIdentity:
    """Turn the optional credential fields into a validated identity.

    Args:
        url: Full webhook URL.
        webhook_id: Numeric webhook id.
        token: Webhook token.

    Returns:
        The resolved ``WebhookIdentity``.

    Raises:
        CredentialError: A subclass identifying the invalid combination,
            or a ``WebhookUrlError`` subclass when the URL is malformed.
    """
    if url is not None:
        if webhook_id is not None or token is not None:
            raise ConflictingCredentialsError()
        return parse_webhook_url(url)

    if token == "":
        token = None

    if webhook_id is None and token is None:
        raise NoCredentialsError()
    if webhook_id is None:
        raise MissingWebhookIdError()
    if token is None:
        raise MissingWebhookTokenError()
    if not 0 <= webhook_id <= MAX_WEBHOOK_ID:
        raise CredentialError(f"Webhook id out of range: {webhook_id}")
    return WebhookIdentity(webhook_id, token)
