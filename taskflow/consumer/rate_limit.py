"""
Admission control for the consume endpoint.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

Clock = Callable[[], float]


@dataclass
class TokenBucket:
    """
    Token bucket for rate limiting.

    Holds at most ``capacity`` tokens and refills continuously at
    ``refill_rate`` tokens per second.
    """

    capacity: float
    tokens: float
    refill_rate: float  # tokens per second
    last_refill: float

    def refill(self, now: float) -> None:
        """Add the tokens accrued since the last refill, capped at capacity."""
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, now: float, tokens: float = 1.0) -> bool:
        """
        Try to consume tokens from the bucket.

        Args:
            now: Current clock reading in seconds.
            tokens: Number of tokens to consume.

        Returns:
            True if tokens were consumed, False if rate limited.
        """
        self.refill(now)

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True

        return False

    @property
    def wait_time(self) -> float:
        """Time in seconds until at least 1 token is available."""
        if self.tokens >= 1:
            return 0.0
        return (1 - self.tokens) / self.refill_rate


class RateLimiter:
    """
    Process-wide token bucket limiter.

    Admits up to ``burst_limit`` requests at once and ``rate_per_second``
    requests per second in the long run. The bucket starts full.
    Safe to call from concurrent requests.
    """

    def __init__(
        self,
        rate_per_second: float,
        burst_limit: int,
        clock: Clock = time.monotonic,
    ):
        """
        Initialize the rate limiter.

        Args:
            rate_per_second: Sustained admission rate.
            burst_limit: Bucket capacity.
            clock: Monotonic clock in seconds, replaceable in tests.
        """
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        if burst_limit < 1:
            raise ValueError("burst_limit must be at least 1")

        self._rate = rate_per_second
        self._burst = burst_limit
        self._clock = clock
        self._lock = threading.Lock()
        self._bucket = self._create_bucket()

    def _create_bucket(self) -> TokenBucket:
        return TokenBucket(
            capacity=self._burst,
            tokens=self._burst,
            refill_rate=self._rate,
            last_refill=self._clock(),
        )

    def check(self, tokens: float = 1.0) -> tuple[bool, float]:
        """
        Check if a request is allowed, taking a token if it is.

        Args:
            tokens: Number of tokens to consume.

        Returns:
            Tuple of (allowed, wait_time_seconds).
        """
        with self._lock:
            allowed = self._bucket.consume(self._clock(), tokens)
            return allowed, self._bucket.wait_time

    def reset(self) -> None:
        """Refill the bucket completely."""
        with self._lock:
            self._bucket = self._create_bucket()
