"""Bounded in-memory relay buffer for inbound messages.

Security: NEVER log chat/sender addresses or text. Only log hashes and lengths.
"""

from collections import deque
from typing import Any, Callable, Iterator

from wabridge.infra.hashing import hash_identifier
from wabridge.infra.time import unix_now
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

from .envelope import LIVE_SYNC_TYPE, InvalidEnvelopeError, normalize
from .models import InboundMessage, QueryResult

logger = get_logger(__name__)

MAX_BUFFER_SIZE = 200


class MessageBuffer:
    """Insertion-ordered, fixed-capacity buffer with FIFO eviction.

    Append/evict only: there is no update or delete. Messages are not
    deduplicated by id, a re-delivered envelope shows up twice.
    """

    def __init__(
        self,
        capacity: int = MAX_BUFFER_SIZE,
        now: Callable[[], int] = unix_now,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._messages: deque[InboundMessage] = deque(maxlen=capacity)
        self._now = now

    @property
    def capacity(self) -> int:
        return self._messages.maxlen or 0

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[InboundMessage]:
        return iter(list(self._messages))

    def append(self, message: InboundMessage) -> None:
        """Append one normalized message, evicting the oldest when full."""
        evicted = len(self._messages) == self._messages.maxlen
        self._messages.append(message)
        if evicted:
            logger.debug("buffer full, oldest message evicted")

    def ingest(
        self, envelope: dict[str, Any], sync_type: str = LIVE_SYNC_TYPE
    ) -> InboundMessage | None:
        """Normalize and buffer one envelope.

        Returns:
            The buffered message, or None when the envelope was filtered out
            (history sync, own message, no content, invalid shape).
        """
        if sync_type != LIVE_SYNC_TYPE:
            return None

        try:
            message = normalize(envelope, self._now)
        except InvalidEnvelopeError:
            logger.warning(
                "invalid inbound envelope dropped",
                extra={"extra_fields": safe_log_context(envelope_type=type(envelope).__name__)},
            )
            return None

        if message is None:
            return None

        self.append(message)

        # Log only safe metadata - NEVER chat address, sender or text
        logger.info(
            "inbound message buffered",
            extra={
                "extra_fields": safe_log_context(
                    sender_hash=hash_identifier(message.sender_id),
                    kind=message.kind.value,
                    text_len=len(message.body_text or ""),
                    is_group=message.is_group,
                    buffered=len(self._messages),
                )
            },
        )
        return message

    def ingest_upsert(
        self, envelopes: list[dict[str, Any]], sync_type: str
    ) -> list[InboundMessage]:
        """Buffer a batch from one upsert event. History sync batches are skipped whole."""
        if sync_type != LIVE_SYNC_TYPE:
            logger.debug(
                "non-live upsert skipped",
                extra={"extra_fields": safe_log_context(sync_type=sync_type, size=len(envelopes))},
            )
            return []

        accepted = []
        for envelope in envelopes:
            message = self.ingest(envelope, sync_type)
            if message is not None:
                accepted.append(message)
        return accepted

    def query(self, since: int) -> QueryResult:
        """Return messages newer than `since`, in insertion order.

        Callers pass the previous response's latest_timestamp as the next
        `since` for incremental polling.
        """
        matched = [m for m in self._messages if m.timestamp > since]
        latest = matched[-1].timestamp if matched else since
        return QueryResult(messages=matched, latest_timestamp=latest)
