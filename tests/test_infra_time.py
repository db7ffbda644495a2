"""Tests for time utilities."""

import time


class TestUnixNow:
    """Tests for unix_now()."""

    def test_returns_whole_seconds(self):
        from wabridge.infra.time import unix_now

        before = int(time.time())
        now = unix_now()
        after = int(time.time())

        assert isinstance(now, int)
        assert before <= now <= after
