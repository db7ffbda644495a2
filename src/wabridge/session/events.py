"""Typed events emitted by a protocol session.

A session never touches bridge state directly; it emits these onto the
lifecycle controller's queue and the controller applies them in order.
"""

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class CredentialsUpdated:
    """New key material to persist."""

    credentials: dict[str, Any]


@dataclass(frozen=True)
class QrChallenge:
    """One-time pairing code issued during authentication."""

    code: str


@dataclass(frozen=True)
class ConnectionOpened:
    """Session authenticated and ready to send/receive."""


@dataclass(frozen=True)
class ConnectionClosed:
    """Session closed. `status_code` is the protocol's disconnect reason, if known."""

    status_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class MessagesUpserted:
    """Batch of inbound envelopes; `sync_type` is "notify" for live traffic."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    sync_type: str = "notify"


SessionEvent = Union[
    CredentialsUpdated,
    QrChallenge,
    ConnectionOpened,
    ConnectionClosed,
    MessagesUpserted,
]
