"""In-process loopback protocol backend (for dev/tests).

Behaves like a paired device without touching the network:
- first run: issues a pairing QR challenge, then "pairs" and persists creds
- later runs: reconnects straight away with the stored creds
- sends are acknowledged locally with a generated message id
- inject() feeds envelopes in as if they arrived from the service

Production deployments point BRIDGE_SESSION_FACTORY at a real backend.
"""

import secrets
import uuid
from typing import Any

from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

from .events import (
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    MessagesUpserted,
    QrChallenge,
)
from .protocol import DisconnectReason, EventSink, SessionOptions

logger = get_logger(__name__)

LOOPBACK_VERSION = (2, 3000, 1015901307)
LOOPBACK_ACCOUNT = "loopback@s.whatsapp.net"


class LoopbackSession:
    """One loopback connection."""

    def __init__(self, emit: EventSink) -> None:
        self._emit = emit
        self.closed = False
        self.sent: list[tuple[str, str, str]] = []

    async def send_text(self, jid: str, text: str) -> str | None:
        if self.closed:
            raise ConnectionError("connection closed")
        message_id = uuid.uuid4().hex[:20].upper()
        self.sent.append((jid, text, message_id))
        return message_id

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._emit(ConnectionClosed(status_code=DisconnectReason.CONNECTION_CLOSED))

    def inject(self, envelopes: list[dict[str, Any]], sync_type: str = "notify") -> None:
        """Deliver envelopes as an inbound upsert."""
        self._emit(MessagesUpserted(messages=list(envelopes), sync_type=sync_type))

    def logout(self) -> None:
        """Simulate the account unlinking this device."""
        self.closed = True
        self._emit(ConnectionClosed(status_code=DisconnectReason.LOGGED_OUT))

    def drop(self) -> None:
        """Simulate a network drop."""
        self.closed = True
        self._emit(ConnectionClosed(status_code=DisconnectReason.CONNECTION_LOST))


class LoopbackSessionFactory:
    """SessionFactory that opens LoopbackSession instances."""

    def __init__(self, auto_pair: bool = True) -> None:
        self._auto_pair = auto_pair
        self.sessions: list[LoopbackSession] = []

    @property
    def current(self) -> LoopbackSession | None:
        return self.sessions[-1] if self.sessions else None

    async def fetch_latest_version(self) -> tuple[tuple[int, ...], bool]:
        return LOOPBACK_VERSION, True

    async def open(self, options: SessionOptions, emit: EventSink) -> LoopbackSession:
        session = LoopbackSession(emit)
        self.sessions.append(session)

        paired = bool(options.credentials.get("me"))
        logger.warning(
            "loopback session opened, messages are not delivered to whatsapp",
            extra={"extra_fields": safe_log_context(paired=paired, browser=options.browser[0])},
        )

        if paired:
            emit(ConnectionOpened())
            return session

        emit(QrChallenge(code=f"loopback,{secrets.token_urlsafe(16)}"))
        if self._auto_pair:
            emit(
                CredentialsUpdated(
                    credentials={
                        "me": {"id": LOOPBACK_ACCOUNT, "name": options.browser[0]},
                        "registered": True,
                    }
                )
            )
            emit(ConnectionOpened())
        return session
