"""
Retry helpers: exponential backoff and bounded retry policies.

``ExponentialBackoff`` drives supervised loops (the digest scheduler)
that reconnect after transient failures. ``RetryPolicy`` is the bounded
attempt budget a component owns for a single operation, such as the
optimistic digest upsert.
"""

import random
from dataclasses import dataclass


class ExponentialBackoff:
    """
    Exponential backoff with jitter.

    Computes delays as: min(base * multiplier^attempt, max_delay) + jitter.
    Call reset() after a successful operation to zero the attempt counter.

    Usage:
        backoff = ExponentialBackoff(base_delay=1.0, max_delay=60.0)
        while True:
            try:
                await do_work()
                backoff.reset()
            except Exception:
                delay = backoff.next_delay()
                await asyncio.sleep(delay)
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        multiplier: float = 2.0,
        jitter_range: float = 0.5,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.jitter_range = jitter_range
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Current attempt count."""
        return self._attempt

    def next_delay(self) -> float:
        """Calculate and return the next backoff delay, incrementing the attempt counter."""
        delay = min(
            self.base_delay * (self.multiplier ** self._attempt),
            self.max_delay,
        )
        # Random jitter: +/- jitter_range fraction of delay
        jitter = delay * random.uniform(-self.jitter_range, self.jitter_range)
        delay = max(0, delay + jitter)
        self._attempt += 1
        return delay

    def reset(self) -> None:
        """Reset the attempt counter after a successful operation."""
        self._attempt = 0


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry budget for one logical operation.

    Attributes:
        max_attempts: Total tries, including the first one.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for any single delay.
    """

    max_attempts: int = 5
    base_delay: float = 0.05
    max_delay: float = 1.0

    def backoff(self) -> ExponentialBackoff:
        """Fresh backoff sequence for one operation."""
        return ExponentialBackoff(
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )
