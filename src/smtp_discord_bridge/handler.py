# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""aiosmtpd handler connecting SMTP sessions to the dispatch queue.

``BridgeHandler`` is the only piece of code the SMTP server calls into:

- ``handle_RCPT`` consults the ``SessionGate`` for every recipient.
- ``handle_DATA`` turns the received body into a ``Mail`` through a
  ``MailAccumulator``, submits it and maps the ``DeliveryOutcome`` to an SMTP
  reply for the sending peer.

aiosmtpd buffers the whole DATA phase before calling ``handle_DATA``, so the
accumulator receives a single chunk here. It lives only for the duration of
the call; an aborted session never reaches it and nothing is left behind.
"""

from __future__ import annotations

import uuid

from aiosmtpd.smtp import SMTP, Envelope, Session

from .dispatch import DispatchQueue
from .gate import AcceptAllGate, Accepted, SessionGate
from .logger import get_logger
from .mail import MailAccumulator, MailEnvelope

REPLY_RCPT_OK = "250 OK"
REPLY_NO_RECIPIENTS = "554 No valid recipients"
REPLY_DELIVERY_FAILED = "451 Requested action aborted: delivery failed"


def _new_mail_id() -> str:
    return uuid.uuid4().hex


class BridgeHandler:
    """aiosmtpd handler forwarding every accepted mail to the dispatch queue.

    Attributes:
        queue: Dispatch queue receiving finalized mails.
        gate: Recipient acceptance policy.
        logger: Logger instance for diagnostic output.
    """

    def __init__(self, queue: DispatchQueue, gate: SessionGate | None = None, logger=None):
        self.queue = queue
        self.gate = gate or AcceptAllGate()
        self.logger = logger or get_logger("SmtpHandler")

    async def handle_RCPT(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
        address: str,
        rcpt_options: list[str],
    ) -> str:
        decision = self.gate.decide(address)
        if isinstance(decision, Accepted):
            envelope.rcpt_tos.append(decision.recipient)
            return REPLY_RCPT_OK
        self.logger.info("Rejected recipient %s: %s", address, decision.reason)
        return f"550 {decision.reason}"

    async def handle_DATA(self, server: SMTP, session: Session, envelope: Envelope) -> str:
        if not envelope.rcpt_tos:
            return REPLY_NO_RECIPIENTS

        accumulator = MailAccumulator(
            MailEnvelope(
                id=_new_mail_id(),
                sender=envelope.mail_from or "",
                recipients=envelope.rcpt_tos,
            )
        )
        content = envelope.content
        if isinstance(content, str):
            content = content.encode("utf-8", errors="surrogateescape")
        accumulator.append(content)
        mail = accumulator.finalize()

        self.logger.debug(
            "Received mail %s from %s (%s) for %s, %d bytes",
            mail.id,
            mail.sender,
            session.peer,
            ", ".join(mail.recipients),
            len(mail.body),
        )
        outcome = await self.queue.submit(mail)
        if outcome.queued:
            return f"250 OK: queued as {outcome.mail_id}"
        return REPLY_DELIVERY_FAILED
