"""Collaborator interfaces for the protocol backend and credential storage."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Protocol

from .events import SessionEvent

EventSink = Callable[[SessionEvent], None]


class DisconnectReason(IntEnum):
    """Close status codes reported by the multi-device protocol."""

    LOGGED_OUT = 401
    FORBIDDEN = 403
    CONNECTION_LOST = 408
    MULTIDEVICE_MISMATCH = 411
    CONNECTION_CLOSED = 428
    CONNECTION_REPLACED = 440
    BAD_SESSION = 500
    UNAVAILABLE_SERVICE = 503
    RESTART_REQUIRED = 515


@dataclass(frozen=True)
class SessionOptions:
    """Everything a backend needs to open one authenticated session."""

    credentials: dict[str, Any]
    version: tuple[int, ...]
    browser: tuple[str, str, str]


class CredentialStore(Protocol):
    """Persists opaque session key material across restarts."""

    def load(self) -> dict[str, Any]:
        ...

    def save(self, creds: dict[str, Any]) -> None:
        ...


class ProtocolSession(Protocol):
    """One live connection to the chat service."""

    async def send_text(self, jid: str, text: str) -> str | None:
        """Send a text message and return the protocol message id once acknowledged."""
        ...

    async def close(self) -> None:
        ...


class SessionFactory(Protocol):
    """Opens protocol sessions.

    `open()` returns as soon as the socket is created; authentication
    progress arrives later as events pushed into `emit`.
    """

    async def fetch_latest_version(self) -> tuple[tuple[int, ...], bool]:
        """Negotiate the protocol version. Returns (version, is_latest)."""
        ...

    async def open(self, options: SessionOptions, emit: EventSink) -> ProtocolSession:
        ...
