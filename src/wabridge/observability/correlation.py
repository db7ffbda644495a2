"""Correlation IDs for HTTP requests and session event handling.

HTTP requests carry the caller's X-Correlation-ID (or a fresh one). Events
applied by the lifecycle pump are tagged with the session generation that
produced them, so a reconnect storm reads as distinct sessions in the logs.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

CORRELATION_ID_HEADER = "X-Correlation-ID"
MAX_CORRELATION_ID_LENGTH = 128

_SAFE_ID = re.compile(r"[A-Za-z0-9._:-]+")

_correlation_id: ContextVar[str] = ContextVar("wabridge_correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def accept_correlation_id(raw: str | None) -> str:
    """Use a caller-supplied ID if it is safe to echo into logs and headers.

    Oversized values or values with characters outside [A-Za-z0-9._:-] are
    replaced by a generated ID.
    """
    if raw:
        raw = raw.strip()
        if len(raw) <= MAX_CORRELATION_ID_LENGTH and _SAFE_ID.fullmatch(raw):
            return raw
    return generate_correlation_id()


def session_correlation_id(generation: int) -> str:
    return f"session-{generation}"


def get_correlation_id() -> str:
    """Current correlation ID, or "" outside any scope."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind `cid` for the duration of the block, restoring the previous value."""
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
