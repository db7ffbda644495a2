"""WhatsApp message models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

USER_JID_SUFFIX = "@s.whatsapp.net"
GROUP_JID_SUFFIX = "@g.us"


class MessageKind(str, Enum):
    """Content kind of an inbound message, one per envelope."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    AUDIO = "audio"
    VOICE_NOTE = "voice_note"
    STICKER = "sticker"
    CONTACT = "contact"
    LOCATION = "location"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InboundMessage:
    """Normalized inbound message as served to the polling consumer.

    ATTENTION PII:
    - `chat_id`, `sender_id`, `display_name` and `body_text` are PII
    - Kept in memory only, never logged
    """

    id: str
    chat_id: str
    sender_id: str
    display_name: str | None
    body_text: str | None
    kind: MessageKind
    timestamp: int
    is_group: bool

    def to_dict(self) -> dict[str, Any]:
        """Wire shape returned by GET /api/incoming."""
        return {
            "id": self.id,
            "chatJid": self.chat_id,
            "senderJid": self.sender_id,
            "pushName": self.display_name,
            "text": self.body_text,
            "messageType": self.kind.value,
            "timestamp": self.timestamp,
            "isGroup": self.is_group,
        }


@dataclass(frozen=True)
class QueryResult:
    """Answer to an incremental poll."""

    messages: list[InboundMessage]
    latest_timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "count": len(self.messages),
            "latest_timestamp": self.latest_timestamp,
        }
