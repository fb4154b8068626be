# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Service lifecycle: credentials, dispatch worker and SMTP listener.

``BridgeService`` wires the components together once at startup:

1. Resolve the webhook identity from the ``[discord]`` section
2. Optionally verify the webhook with Discord
3. Start the Prometheus exporter if ``[metrics]`` has a port
4. Start the dispatch worker
5. Serve the aiosmtpd ``SMTP`` protocol on the configured address

``stop()`` closes the listener first, then shuts the dispatch queue down so
mails already handed off are still delivered. It is also used to undo a
partial start.

Example:
    Running until cancelled::

        service = BridgeService(load_config("config.ini"))
        stop_event = asyncio.Event()
        await service.serve(stop_event)  # returns after stop_event.set()
"""

from __future__ import annotations

import asyncio

from aiosmtpd.smtp import SMTP

from .converter import EmbedMailConverter, MailConverter
from .credentials import WebhookIdentity
from .dispatch import DispatchQueue
from .gate import SessionGate
from .handler import BridgeHandler
from .logger import get_logger
from .models import BridgeConfig
from .prometheus import BridgeMetrics
from .webhook import DiscordWebhookTransport, WebhookTransport


class BridgeService:
    """SMTP to Discord bridge service.

    Attributes:
        config: Validated bridge configuration.
        logger: Logger instance for diagnostic output.
        metrics: Prometheus metrics collector.
        identity: Resolved webhook identity, set by :meth:`start`.
        queue: Dispatch queue, set by :meth:`start`.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        transport: WebhookTransport | None = None,
        converter: MailConverter | None = None,
        gate: SessionGate | None = None,
        metrics: BridgeMetrics | None = None,
        logger=None,
        close_timeout: float = 5.0,
    ):
        self.config = config
        self.close_timeout = close_timeout
        self.logger = logger or get_logger()
        self.metrics = metrics or BridgeMetrics()
        self._transport = transport or DiscordWebhookTransport(
            api_base=config.discord.api_base,
            timeout=config.discord.request_timeout,
        )
        self._converter = converter or EmbedMailConverter()
        self._gate = gate
        self.identity: WebhookIdentity | None = None
        self.queue: DispatchQueue | None = None
        self._server: asyncio.AbstractServer | None = None

    @property
    def port(self) -> int | None:
        """Port actually bound by the listener (useful with ``listen_port = 0``)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Resolve credentials, start the exporter, the dispatch worker and the SMTP listener.

        If any step after credential verification fails, whatever was already
        started is stopped again before the error propagates.

        Raises:
            CredentialError: If the webhook credentials are invalid.
            WebhookTransportError: If startup verification is enabled and fails.
            MetricsExporterError: If the metrics exporter cannot be bound.
            OSError: If the SMTP listen address cannot be bound.
        """
        self.identity = self.config.discord.resolve_identity()
        if self.config.discord.verify_on_start:
            await self._transport.verify(self.identity)

        metrics_config = self.config.metrics
        if metrics_config.enabled:
            self.metrics.serve(metrics_config.listen_port, str(metrics_config.listen_addr))
            self.logger.info(
                "Metrics available on http://%s:%d/metrics",
                metrics_config.listen_addr,
                self.metrics.exporter_port,
            )

        try:
            await self._start_listener()
        except BaseException:
            await self.stop()
            raise

        self.logger.info(
            "%s listening on %s:%d, forwarding to webhook %d",
            self.config.smtp.display_name,
            self.config.smtp.host,
            self.port,
            self.identity.id,
        )

    async def _start_listener(self) -> None:
        self.queue = DispatchQueue(
            self.identity,
            self._transport,
            self._converter,
            metrics=self.metrics,
        )
        await self.queue.start()

        handler = BridgeHandler(self.queue, self._gate)
        smtp_config = self.config.smtp
        loop = asyncio.get_running_loop()

        def factory() -> SMTP:
            return SMTP(handler, hostname=smtp_config.display_name, loop=loop)

        self._server = await loop.create_server(factory, host=smtp_config.host, port=smtp_config.listen_port)

    async def serve(self, stop_event: asyncio.Event) -> None:
        """Start the service, run until ``stop_event`` is set, then stop it."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Close the SMTP listener, drain the dispatch worker, then stop the exporter."""
        if self._server is not None:
            self._server.close()
            try:
                await asyncio.wait_for(self._server.wait_closed(), timeout=self.close_timeout)
            except asyncio.TimeoutError:
                self.logger.warning("SMTP sessions still open after %.0fs, not waiting for them", self.close_timeout)
            self._server = None
        if self.queue is not None:
            await self.queue.shutdown()
        if self.metrics.exporter_port is not None:
            await asyncio.to_thread(self.metrics.shutdown)
        self.logger.info("Bridge stopped")
