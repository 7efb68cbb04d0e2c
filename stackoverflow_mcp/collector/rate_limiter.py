"""Rate limiting functionality for Stack Exchange API requests."""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from stackoverflow_mcp.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter for Stack Exchange API requests.

    Keeps the instants of recently permitted calls and refuses a new call
    once the window already holds ``max_requests_per_window`` of them.
    One instance is shared by every outbound call in the process.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the rate limiter with configuration.

        Args:
            config: Rate limiting configuration
            clock: Source of the current instant in seconds
        """
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.config.window_sec
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

    def permit(self) -> bool:
        """
        Decide whether an outbound call may be made right now.

        Never blocks. A permitted call is recorded immediately, so the check
        and the bookkeeping happen atomically under the lock.

        Returns:
            True if the call is permitted, False if the window is full
        """
        with self._lock:
            now = self._clock()
            self._prune(now)

            if len(self._calls) >= self.config.max_requests_per_window:
                logger.debug(
                    f"Rate window full: {len(self._calls)}/{self.config.max_requests_per_window} "
                    f"calls in the last {self.config.window_sec:.0f}s"
                )
                return False

            self._calls.append(now)
            return True

    def in_window(self) -> int:
        """Number of calls currently counted against the window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._calls)

    def seconds_until_permit(self) -> float:
        """Seconds until the oldest recorded call leaves the window."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._calls) < self.config.max_requests_per_window:
                return 0.0
            return max(0.0, self._calls[0] + self.config.window_sec - now)
