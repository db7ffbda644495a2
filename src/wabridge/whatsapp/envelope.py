"""Inbound envelope adapter - validate and normalize raw protocol messages."""

from typing import Any, Callable

from wabridge.infra.time import unix_now

from .models import GROUP_JID_SUFFIX, InboundMessage, MessageKind

# Only real-time upserts are relayed; history sync replays are dropped
LIVE_SYNC_TYPE = "notify"


class InvalidEnvelopeError(Exception):
    """Raised when an envelope has an invalid shape."""

    pass


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _non_empty(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def classify(content: dict[str, Any]) -> tuple[MessageKind, str | None]:
    """Pick exactly one kind for the content, with its caption/body if any.

    Precedence: plain text, extended text, image, video, document, audio
    (voice note when push-to-talk), sticker, contact, location.
    """
    if content.get("conversation"):
        return MessageKind.TEXT, content["conversation"]

    extended = _as_dict(content.get("extendedTextMessage"))
    if extended.get("text"):
        return MessageKind.TEXT, extended["text"]

    if content.get("imageMessage"):
        return MessageKind.IMAGE, _non_empty(_as_dict(content["imageMessage"]).get("caption"))

    if content.get("videoMessage"):
        return MessageKind.VIDEO, _non_empty(_as_dict(content["videoMessage"]).get("caption"))

    if content.get("documentMessage"):
        return MessageKind.DOCUMENT, _non_empty(
            _as_dict(content["documentMessage"]).get("fileName")
        )

    if content.get("audioMessage"):
        if _as_dict(content["audioMessage"]).get("ptt"):
            return MessageKind.VOICE_NOTE, None
        return MessageKind.AUDIO, None

    if content.get("stickerMessage"):
        return MessageKind.STICKER, None

    if content.get("contactMessage"):
        return MessageKind.CONTACT, _non_empty(
            _as_dict(content["contactMessage"]).get("displayName")
        )

    if content.get("locationMessage"):
        return MessageKind.LOCATION, None

    return MessageKind.UNKNOWN, None


def parse_timestamp(raw: Any, now: Callable[[], int] = unix_now) -> int:
    """Coerce a protocol timestamp to unix seconds.

    Accepts ints, floats, numeric strings and protobuf Long objects
    ({"low": ..., "high": ...}). Anything missing, malformed or non-positive
    falls back to the current wall-clock time.
    """
    value: int | None = None

    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, (float, str)):
        try:
            value = int(float(raw.strip() if isinstance(raw, str) else raw))
        except (ValueError, OverflowError):
            # nan, inf and out-of-range exponents
            value = None
    elif isinstance(raw, dict) and isinstance(raw.get("low"), int):
        high = raw.get("high", 0)
        high = high if isinstance(high, int) else 0
        value = (high << 32) + (raw["low"] & 0xFFFFFFFF)

    if value is None or value <= 0:
        return now()
    return value


def normalize(envelope: dict[str, Any], now: Callable[[], int] = unix_now) -> InboundMessage | None:
    """Normalize one raw envelope into an InboundMessage.

    Args:
        envelope: Raw message as delivered by the protocol session
            ({"key": {...}, "message": {...}, "pushName": ..., "messageTimestamp": ...}).
        now: Wall-clock source for the timestamp fallback.

    Returns:
        The normalized message, or None for envelopes the relay ignores
        (no content, or authored by the bridge's own account).

    Raises:
        InvalidEnvelopeError: If the envelope is not an object.
    """
    if not isinstance(envelope, dict):
        raise InvalidEnvelopeError("envelope must be an object")

    content = envelope.get("message")
    if not content or not isinstance(content, dict):
        return None

    key = _as_dict(envelope.get("key"))
    if key.get("fromMe"):
        return None

    chat_id = _non_empty(key.get("remoteJid")) or ""
    is_group = chat_id.endswith(GROUP_JID_SUFFIX)
    sender_id = (_non_empty(key.get("participant")) or "") if is_group else chat_id

    kind, body_text = classify(content)

    return InboundMessage(
        id=_non_empty(key.get("id")) or "",
        chat_id=chat_id,
        sender_id=sender_id,
        display_name=_non_empty(envelope.get("pushName")),
        body_text=body_text,
        kind=kind,
        timestamp=parse_timestamp(envelope.get("messageTimestamp"), now),
        is_group=is_group,
    )
