"""
Retry delay policy for external calls.

Exponential growth per attempt, optionally overridden by the
provider's own retry hint, always clamped to [min_delay, max_delay].
"""

import random


class ExponentialBackoff:
    """
    Exponential backoff with optional jitter and a hard clamp.

    Computes delays as: clamp(base * multiplier^attempt + jitter).
    A provider hint replaces the computed value for that attempt but
    is clamped the same way.

    Usage:
        backoff = ExponentialBackoff(base_delay=2.0, multiplier=1.5)
        delay = backoff.next_delay(hint=retry_hint_seconds(exc))
        await asyncio.sleep(delay)
    """

    def __init__(
        self,
        base_delay: float = 2.0,
        max_delay: float = 60.0,
        min_delay: float = 1.0,
        multiplier: float = 1.5,
        jitter_range: float = 0.0,
    ):
        if min_delay > max_delay:
            raise ValueError("min_delay must not exceed max_delay")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.min_delay = min_delay
        self.multiplier = multiplier
        self.jitter_range = jitter_range
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Current attempt count."""
        return self._attempt

    def clamp(self, delay: float) -> float:
        return max(self.min_delay, min(delay, self.max_delay))

    def next_delay(self, hint: float | None = None) -> float:
        """Return the next delay and advance the attempt counter."""
        if hint is not None and hint > 0:
            delay = hint
        else:
            delay = self.base_delay * (self.multiplier ** self._attempt)
            if self.jitter_range:
                delay += delay * random.uniform(-self.jitter_range, self.jitter_range)
        self._attempt += 1
        return self.clamp(delay)

    def reset(self) -> None:
        """Reset the attempt counter after a successful operation."""
        self._attempt = 0
