"""Shared test doubles for bridge tests.

These are NOT fixtures - they are plain classes and functions that both
conftest.py and individual test files import.
"""

from __future__ import annotations

import asyncio


class ScheduledCall:
    """Handle returned by RecordingScheduler, mirrors asyncio.TimerHandle.cancel()."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class RecordingScheduler:
    """Deterministic stand-in for loop.call_later."""

    def __init__(self):
        self.calls: list[ScheduledCall] = []

    def __call__(self, delay, callback):
        call = ScheduledCall(delay, callback)
        self.calls.append(call)
        return call

    @property
    def delays(self) -> list[float]:
        return [c.delay for c in self.calls]


class FakeQrRenderer:
    """QR renderer that skips image work."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.codes: list[str] = []

    def to_data_url(self, code: str) -> str:
        self.codes.append(code)
        if self.fail:
            raise ValueError("render failed")
        return f"data:image/png;base64,{code}"

    def to_terminal(self, code: str) -> bool:
        return False


class FakeSession:
    """Protocol session recording sends."""

    def __init__(self, message_id="MSGID0001", error: Exception | None = None):
        self.message_id = message_id
        self.error = error
        self.sent: list[tuple[str, str]] = []
        self.closed = False

    async def send_text(self, jid, text):
        if self.error is not None:
            raise self.error
        self.sent.append((jid, text))
        return self.message_id

    async def close(self):
        self.closed = True


class MemoryCredentialStore:
    """In-memory credential store."""

    def __init__(self, creds=None, fail_load: bool = False):
        self.creds = dict(creds or {})
        self.fail_load = fail_load
        self.saves: list[dict] = []

    def load(self):
        if self.fail_load:
            raise OSError("auth dir unreadable")
        return dict(self.creds)

    def save(self, creds):
        self.creds = dict(creds)
        self.saves.append(dict(creds))


def text_envelope(msg_id="A1", text="hello", ts=1000, jid="15550001111@s.whatsapp.net", **key):
    """Build a minimal live text envelope."""
    return {
        "key": {"id": msg_id, "remoteJid": jid, "fromMe": False, **key},
        "message": {"conversation": text},
        "messageTimestamp": ts,
        "pushName": "Test Contact",
    }


async def settle(rounds: int = 20) -> None:
    """Let queued tasks and callbacks on the running loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
