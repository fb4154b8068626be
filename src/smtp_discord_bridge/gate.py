"""Recipient acceptance policy.

The SMTP handler asks a ``SessionGate`` about every ``RCPT TO`` address.
Gates must be pure: no I/O, no state changes, so the policy can be swapped
(for example for an allow-list) without touching the rest of the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union


@dataclass(frozen=True)
class Accepted:
    """The recipient is accepted as given."""

    recipient: str


@dataclass(frozen=True)
class Rejected:
    """The recipient is refused; ``reason`` is returned to the SMTP client."""

    recipient: str
    reason: str = "Recipient rejected"


Decision = Union[Accepted, Rejected]


class SessionGate(Protocol):
    def decide(self, recipient: str) -> Decision: ...


class AcceptAllGate:
    """Gate that accepts every proposed recipient."""

    def decide(self, recipient: str) -> Decision:
        return Accepted(recipient)
