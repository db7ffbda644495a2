"""Reconnect backoff policy."""

from dataclasses import dataclass

MAX_RECONNECT_ATTEMPTS = 10
BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 60.0


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded exponential backoff: delay = min(base * 2**attempt, max_delay)."""

    max_attempts: int = MAX_RECONNECT_ATTEMPTS
    base_delay: float = BASE_DELAY_SECONDS
    max_delay: float = MAX_DELAY_SECONDS

    def delay_for(self, attempt: int) -> float:
        """Delay before reconnect attempt number `attempt` (1-based)."""
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        # float(2**1024) overflows; max_delay is reached long before 2**62
        exponent = min(attempt, 62)
        return min(self.base_delay * (2**exponent), self.max_delay)

    def allows(self, attempts_so_far: int) -> bool:
        """True while another reconnect may be scheduled."""
        return attempts_so_far < self.max_attempts
