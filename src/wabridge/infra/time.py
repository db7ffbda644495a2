"""Wall-clock helpers."""

import time


def unix_now() -> int:
    """Return current wall-clock time in whole unix seconds."""
    return int(time.time())
