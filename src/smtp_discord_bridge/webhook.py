# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP transport for Discord webhooks.

``DiscordWebhookTransport`` executes a webhook with the JSON payload built by
a ``MailConverter``. It is called by the dispatch worker only, one request at
a time, and reports any failure as ``WebhookTransportError``. Retries are not
attempted here or anywhere else in the bridge.

Example:
    Posting a message::

        transport = DiscordWebhookTransport(timeout=10)
        await transport.verify(identity)
        await transport.post(identity, WebhookMessage(content="hello"))
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import aiohttp

from .credentials import WebhookIdentity
from .logger import get_logger
from .models import DEFAULT_API_BASE, WebhookMessage


class WebhookTransportError(RuntimeError):
    """Raised when the webhook call fails or Discord rejects it.

    Attributes:
        status: HTTP status code, or None for network errors and timeouts.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
        self.code = "webhook_transport_error"


class WebhookTransport(Protocol):
    async def verify(self, identity: WebhookIdentity) -> dict[str, Any]: ...

    async def post(self, identity: WebhookIdentity, message: WebhookMessage) -> dict[str, Any] | None: ...


class DiscordWebhookTransport:
    """Discord execute-webhook client built on aiohttp.

    Attributes:
        api_base: Base URL of the Discord API, without trailing slash.
        timeout: Total per-request timeout in seconds, None for no limit.
        logger: Logger instance for diagnostic output.
    """

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float | None = 30.0,
        logger=None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.logger = logger or get_logger("DiscordWebhook")

    def webhook_url(self, identity: WebhookIdentity) -> str:
        return f"{self.api_base}/webhooks/{identity.id}/{identity.token}"

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def verify(self, identity: WebhookIdentity) -> dict[str, Any]:
        """Fetch the webhook object to check that the credentials work.

        Returns:
            The webhook object returned by Discord.

        Raises:
            WebhookTransportError: If the webhook cannot be fetched.
        """
        try:
            async with self._session() as session:
                async with session.get(self.webhook_url(identity)) as resp:
                    if resp.status >= 400:
                        raise WebhookTransportError(
                            f"Webhook {identity.id} lookup failed with HTTP {resp.status}",
                            status=resp.status,
                        )
                    webhook = await resp.json()
            if not isinstance(webhook, dict):
                raise WebhookTransportError(
                    f"Webhook {identity.id} lookup returned {type(webhook).__name__}, expected an object",
                    status=resp.status,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise WebhookTransportError(f"Webhook {identity.id} lookup failed: {exc}") from exc
        self.logger.info(
            "Using Discord webhook %s (%s)", identity.id, webhook.get("name") or "unnamed"
        )
        return webhook

    async def post(self, identity: WebhookIdentity, message: WebhookMessage) -> dict[str, Any] | None:
        """Execute the webhook with ``message`` and wait for Discord's answer.

        Returns:
            The created message object, or None when Discord answers 204.

        Raises:
            WebhookTransportError: On HTTP errors, network errors or timeouts.
        """
        try:
            async with self._session() as session:
                async with session.post(
                    self.webhook_url(identity),
                    params={"wait": "true"},
                    json=message.to_payload(),
                ) as resp:
                    if resp.status >= 400:
                        detail = await resp.text()
                        raise WebhookTransportError(
                            f"Webhook {identity.id} returned HTTP {resp.status}: {detail[:200]}",
                            status=resp.status,
                        )
                    if resp.status == 204:
                        return None
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise WebhookTransportError(f"Webhook {identity.id} call failed: {exc}") from exc
