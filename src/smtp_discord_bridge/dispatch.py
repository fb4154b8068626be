# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Serialized delivery of completed mails to the Discord webhook.

``DispatchQueue`` is the single hand-off point between SMTP sessions and the
webhook. Sessions call :meth:`DispatchQueue.submit`, which places a
``Deliver`` command on an asyncio queue and waits for its outcome. One
background worker task owns the webhook identity, the converter and the
transport; it takes commands strictly in arrival order and awaits each
webhook call before taking the next one, so at most one outbound call is in
flight and a session's mails are delivered in the order it submitted them.

Failures never escape the worker. A transport error or a body that does not
decode is reported as ``DeliveryOutcome.failed`` to the submitting session
only, and the worker continues with the next command. Nothing is retried.

``shutdown()`` closes the queue to new submissions (they fail immediately),
enqueues a ``Shutdown`` command and waits until the worker has drained every
command handed off before it.

Example:
    Wiring the queue::

        queue = DispatchQueue(identity, DiscordWebhookTransport(), EmbedMailConverter())
        await queue.start()
        outcome = await queue.submit(mail)
        if outcome.queued:
            print("queued as", outcome.mail_id)
        await queue.shutdown()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Union

from .converter import MailConverter
from .credentials import WebhookIdentity
from .logger import get_logger
from .mail import Mail
from .prometheus import BridgeMetrics
from .webhook import WebhookTransport, WebhookTransportError


class DeliveryError(RuntimeError):
    """Raised internally when a mail cannot be delivered.

    Attributes:
        reason: Failure category used for metrics and the outcome.
    """

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason
        self.code = "delivery_error"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one submission, returned to the SMTP session.

    Attributes:
        queued: True if the webhook accepted the message.
        mail_id: Id of the delivered mail, set only when ``queued``.
        reason: Failure category, set only when not ``queued``.
    """

    queued: bool
    mail_id: str | None = None
    reason: str | None = None

    @classmethod
    def queued_with_id(cls, mail_id: str) -> "DeliveryOutcome":
        return cls(queued=True, mail_id=mail_id)

    @classmethod
    def failed(cls, reason: str) -> "DeliveryOutcome":
        return cls(queued=False, reason=reason)


@dataclass
class Deliver:
    """Deliver ``mail`` and resolve ``outcome`` with the result."""

    mail: Mail
    outcome: asyncio.Future = field(repr=False)


@dataclass(frozen=True)
class Shutdown:
    """Stop the worker once every earlier command has been processed."""


Command = Union[Deliver, Shutdown]


class DispatchQueue:
    """Ordered, single-consumer dispatch of mails to the webhook.

    Attributes:
        logger: Logger instance for diagnostic output.
        metrics: Prometheus metrics collector.
    """

    def __init__(
        self,
        identity: WebhookIdentity,
        transport: WebhookTransport,
        converter: MailConverter,
        *,
        metrics: BridgeMetrics | None = None,
        logger=None,
    ):
        """Create the queue; the worker is started by :meth:`start`.

        Args:
            identity: Webhook identity, used by the worker only.
            transport: Webhook transport, used by the worker only.
            converter: Strategy turning a ``Mail`` into a webhook message.
            metrics: Prometheus metrics collector. If None, creates new instance.
            logger: Custom logger instance. If None, uses default logger.
        """
        self._identity = identity
        self._transport = transport
        self._converter = converter
        self.metrics = metrics or BridgeMetrics()
        self.logger = logger or get_logger("Dispatch")
        self._commands: asyncio.Queue[Command] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of commands handed off but not yet taken by the worker."""
        return self._commands.qsize()

    async def start(self) -> None:
        """Spawn the dispatch worker task."""
        if self._closed:
            raise RuntimeError("Dispatch queue has been shut down")
        if self.running:
            return
        self._task = asyncio.create_task(self._worker(), name="discord-dispatch-worker")
        self.logger.debug("Dispatch worker started")

    async def submit(self, mail: Mail) -> DeliveryOutcome:
        """Hand ``mail`` to the worker and wait for the delivery outcome.

        Returns immediately with a failed outcome once the queue is shut down.
        Cancelling the caller does not cancel a delivery already handed off.
        """
        if self._closed:
            self.logger.warning("Rejecting mail %s: dispatch queue is shut down", mail.id)
            self.metrics.inc_failed("closed")
            return DeliveryOutcome.failed("closed")

        outcome: asyncio.Future = asyncio.get_running_loop().create_future()
        self._commands.put_nowait(Deliver(mail, outcome))
        self.metrics.set_pending(self._commands.qsize())
        return await asyncio.shield(outcome)

    async def shutdown(self) -> None:
        """Stop accepting mail, drain handed-off commands and stop the worker."""
        if self._closed:
            if self._task is not None:
                await self._task
            return
        self._closed = True
        self._commands.put_nowait(Shutdown())
        if self._task is None:
            # Never started: fail whatever was handed off
            self._fail_pending("closed")
            return
        await self._task
        self.logger.debug("Dispatch worker stopped")

    def _fail_pending(self, reason: str) -> None:
        while not self._commands.empty():
            command = self._commands.get_nowait()
            if isinstance(command, Deliver) and not command.outcome.done():
                self.metrics.inc_failed(reason)
                command.outcome.set_result(DeliveryOutcome.failed(reason))

    async def _worker(self) -> None:
        """Take commands one at a time until ``Shutdown``."""
        while True:
            command = await self._commands.get()
            self.metrics.set_pending(self._commands.qsize())
            if isinstance(command, Shutdown):
                break
            result = await self._deliver(command.mail)
            if not command.outcome.done():
                command.outcome.set_result(result)

    async def _deliver(self, mail: Mail) -> DeliveryOutcome:
        try:
            try:
                message = self._converter.convert(mail)
            except UnicodeDecodeError as exc:
                raise DeliveryError(f"body is not valid UTF-8 ({exc.reason})", "encoding") from exc
            try:
                await self._transport.post(self._identity, message)
            except WebhookTransportError as exc:
                raise DeliveryError(str(exc), "transport") from exc
        except DeliveryError as exc:
            self.logger.warning("Delivery of mail %s failed: %s", mail.id, exc)
            self.metrics.inc_failed(exc.reason)
            return DeliveryOutcome.failed(exc.reason)
        except Exception as exc:
            self.logger.exception("Unexpected error delivering mail %s: %s", mail.id, exc)
            self.metrics.inc_failed("unknown")
            return DeliveryOutcome.failed("unknown")

        self.logger.info(
            "Forwarded mail %s from %s to %d recipient(s)", mail.id, mail.sender, len(mail.recipients)
        )
        self.metrics.inc_forwarded()
        return DeliveryOutcome.queued_with_id(mail.id)
