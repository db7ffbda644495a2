"""Tests for WhatsApp outbound messaging - normalization and NO PII in logs."""

import asyncio
from unittest.mock import patch

import pytest

from wabridge.whatsapp.outbound import SendFailedError, normalize_recipient, send_text

from .helpers import FakeSession


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for level, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def has_extra_field(self, key: str) -> bool:
        """Check if any call has the given key in extra_fields."""
        for _, _, kwargs in self.calls:
            extra = kwargs.get("extra", {})
            extra_fields = extra.get("extra_fields", {})
            if key in extra_fields:
                return True
        return False


class TestNormalizeRecipient:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("15551234567", "15551234567@s.whatsapp.net"),
            ("+1 (555) 123-4567", "15551234567@s.whatsapp.net"),
            ("15551234567@s.whatsapp.net", "15551234567@s.whatsapp.net"),
            ("120363000000@g.us", "120363000000@g.us"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_recipient(raw) == expected


class TestSendText:
    def test_returns_address_and_message_id(self):
        session = FakeSession(message_id="3EB0XYZ")

        jid, message_id = asyncio.run(
            send_text(session, recipient="15551234567", text="hi")
        )

        assert jid == "15551234567@s.whatsapp.net"
        assert message_id == "3EB0XYZ"
        assert session.sent == [("15551234567@s.whatsapp.net", "hi")]

    def test_failure_carries_description_and_is_not_retried(self):
        session = FakeSession(error=TimeoutError("Timed Out"))

        with pytest.raises(SendFailedError, match="Timed Out") as exc_info:
            asyncio.run(send_text(session, recipient="15551234567", text="hi"))

        assert exc_info.value.description == "Timed Out"
        assert session.sent == []

    def test_failure_without_message_uses_type_name(self):
        session = FakeSession(error=ConnectionError())

        with pytest.raises(SendFailedError, match="ConnectionError"):
            asyncio.run(send_text(session, recipient="1555", text="hi"))


class TestNoPiiLeakage:
    """Tests that verify NO PII (recipient, text) appears in logs."""

    PHONE = "15557654321"
    MESSAGE_TEXT = "dummy_text"

    def test_send_logs_no_pii(self):
        recorder = LogRecorder()

        with patch("wabridge.whatsapp.outbound.logger", recorder):
            asyncio.run(
                send_text(
                    FakeSession(),
                    recipient=self.PHONE,
                    text=self.MESSAGE_TEXT,
                    correlation_id="test-corr-001",
                )
            )

        all_logged = recorder.get_all_logged_content()
        assert self.PHONE not in all_logged, "Phone leaked!"
        assert self.MESSAGE_TEXT not in all_logged, "Message text leaked!"
        assert len(recorder.calls) >= 1
        assert recorder.has_extra_field("to_hash")
        assert recorder.has_extra_field("text_len")

    def test_failure_logs_no_pii(self):
        recorder = LogRecorder()

        with patch("wabridge.whatsapp.outbound.logger", recorder):
            with pytest.raises(SendFailedError):
                asyncio.run(
                    send_text(
                        FakeSession(error=RuntimeError("boom")),
                        recipient=self.PHONE,
                        text=self.MESSAGE_TEXT,
                    )
                )

        all_logged = recorder.get_all_logged_content()
        assert self.PHONE not in all_logged
        assert self.MESSAGE_TEXT not in all_logged
        assert any(level == "error" for level, _, _ in recorder.calls)
