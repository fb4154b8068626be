# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail records and per-session body accumulation.

A ``MailAccumulator`` is created for one in-flight mail once the envelope
(sender, recipients, correlation id) is known. Body chunks are appended as
they arrive and ``finalize()`` turns the buffer into an immutable ``Mail``
that is handed to the dispatch queue exactly once.

Accumulators are owned by the SMTP session that created them and are never
shared between sessions.

Example:
    Collecting a body in several chunks::

        acc = MailAccumulator(MailEnvelope("id-1", "a@example.com", ["b@example.com"]))
        acc.append(b"He")
        acc.append(b"llo")
        mail = acc.finalize()
        assert mail.body == b"Hello"
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class MailEnvelope:
    """Envelope metadata known before the body has been received.

    Attributes:
        id: Correlation id reported back to the SMTP client.
        sender: Reverse path from ``MAIL FROM``.
        recipients: Accepted forward paths from ``RCPT TO``, in order.
    """

    id: str
    sender: str
    recipients: Sequence[str] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "recipients", tuple(self.recipients))


@dataclass(frozen=True)
class Mail:
    """One completed mail, ready for delivery.

    Attributes:
        id: Correlation id, copied from the envelope.
        sender: Reverse path of the mail.
        recipients: Non-empty ordered sequence of recipients.
        body: Raw body bytes exactly as received.
    """

    id: str
    sender: str
    recipients: Sequence[str]
    body: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "recipients", tuple(self.recipients))
        if not self.recipients:
            raise ValueError(f"Mail {self.id} has no recipients")


class MailAccumulator:
    """Mutable body buffer for a single in-flight mail.

    ``append`` never blocks and never rejects a chunk; size limits, if any,
    belong to the SMTP server in front of it.

    Attributes:
        envelope: Envelope metadata captured at creation.
    """

    def __init__(self, envelope: MailEnvelope):
        self.envelope = envelope
        self._buffer: bytearray | None = bytearray()

    @property
    def finalized(self) -> bool:
        return self._buffer is None

    def __len__(self) -> int:
        return len(self._buffer) if self._buffer is not None else 0

    def append(self, chunk: bytes) -> None:
        """Append a body chunk.

        Raises:
            RuntimeError: If the accumulator was already finalized.
        """
        if self._buffer is None:
            raise RuntimeError(f"Mail {self.envelope.id} already finalized")
        self._buffer += chunk

    def finalize(self) -> Mail:
        """Consume the buffer and return the completed mail.

        Raises:
            RuntimeError: If called more than once.
            ValueError: If the envelope has no recipients.
        """
        if self._buffer is None:
            raise RuntimeError(f"Mail {self.envelope.id} already finalized")
        body = bytes(self._buffer)
        self._buffer = None
        return Mail(
            id=self.envelope.id,
            sender=self.envelope.sender,
            recipients=self.envelope.recipients,
            body=body,
        )
