"""Bridge state shared between the lifecycle controller and the HTTP layer."""

import enum

from wabridge.whatsapp.buffer import MessageBuffer

from .protocol import ProtocolSession


class ConnectionState(str, enum.Enum):
    """Connection states, reported verbatim by GET /api/status."""

    DISCONNECTED = "disconnected"
    QR_PENDING = "qr_pending"
    CONNECTED = "connected"


class BridgeState:
    """Single owner of the connection state, QR payload, reconnect counter,
    live session handle and inbound buffer.

    HTTP handlers only read. The mark_*/attach/detach mutators and the
    counter are driven by the lifecycle controller's event handlers.
    """

    def __init__(self, buffer: MessageBuffer | None = None) -> None:
        self._status = ConnectionState.DISCONNECTED
        self._qr_data_url: str | None = None
        self._session: ProtocolSession | None = None
        self._reconnect_attempts = 0
        self.buffer = buffer if buffer is not None else MessageBuffer()

    @property
    def status(self) -> ConnectionState:
        return self._status

    @property
    def qr_data_url(self) -> str | None:
        return self._qr_data_url

    @property
    def session(self) -> ProtocolSession | None:
        return self._session

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionState.CONNECTED and self._session is not None

    # --- controller-side mutators ---

    def attach_session(self, session: ProtocolSession) -> None:
        self._session = session

    def detach_session(self) -> ProtocolSession | None:
        session, self._session = self._session, None
        return session

    def mark_qr_pending(self, qr_data_url: str | None) -> None:
        """Replace any previous challenge; the protocol issues one at a time."""
        self._status = ConnectionState.QR_PENDING
        self._qr_data_url = qr_data_url

    def mark_connected(self) -> None:
        self._status = ConnectionState.CONNECTED
        self._qr_data_url = None
        self._reconnect_attempts = 0

    def mark_disconnected(self) -> None:
        self._status = ConnectionState.DISCONNECTED
        self._qr_data_url = None

    def next_reconnect_attempt(self) -> int:
        self._reconnect_attempts += 1
        return self._reconnect_attempts
