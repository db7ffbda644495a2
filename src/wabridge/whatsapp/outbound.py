"""Outbound WhatsApp messaging through the live protocol session.

Security: NEVER log recipient or text. Only log hashes and lengths.
"""

import re

from wabridge.infra.hashing import hash_identifier
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.session.protocol import ProtocolSession

from .models import USER_JID_SUFFIX

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


class SendFailedError(Exception):
    """Raised when the protocol session rejects or fails a send."""

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description


def normalize_recipient(recipient: str) -> str:
    """Turn a raw phone number into a per-user address.

    Args:
        recipient: Phone number in any format (e.g. "+1 (555) 123-4567") or
            a full address (e.g. "15551234567@s.whatsapp.net").

    Returns:
        Full address; values containing "@" pass through unchanged.
    """
    if "@" in recipient:
        return recipient
    return _NON_DIGITS.sub("", recipient) + USER_JID_SUFFIX


async def send_text(
    session: ProtocolSession,
    *,
    recipient: str,
    text: str,
    correlation_id: str | None = None,
) -> tuple[str, str | None]:
    """Send a text message and wait for the session's acknowledgment.

    Args:
        session: Live protocol session.
        recipient: Phone number or address. NEVER logged.
        text: Message text. NEVER logged.
        correlation_id: Optional correlation ID for tracing.

    Returns:
        (normalized address, protocol message id or None).

    Raises:
        SendFailedError: On any protocol-level failure. Not retried.
    """
    jid = normalize_recipient(recipient)

    # Safe logging context - NEVER include jid or text
    log_ctx = safe_log_context(
        correlationId=correlation_id or "",
        to_hash=hash_identifier(jid),
        text_len=len(text),
    )

    logger.info("sending outbound message", extra={"extra_fields": log_ctx})

    try:
        message_id = await session.send_text(jid, text)
    except Exception as e:
        logger.error(
            "outbound send failed",
            extra={
                "extra_fields": safe_log_context(**log_ctx, error_type=type(e).__name__)
            },
        )
        raise SendFailedError(str(e) or type(e).__name__) from e

    logger.info("outbound message sent", extra={"extra_fields": log_ctx})
    return jid, message_id
