"""Throttling and retry logic for Stack Exchange API requests."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from stackoverflow_mcp.collector.rate_limiter import RateLimiter
from stackoverflow_mcp.config import RateLimitConfig
from stackoverflow_mcp.errors import ExhaustedRetries, is_rate_limited

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThrottledInvoker:
    """
    Runs async operations under the shared rate limiter.

    Local throttling (our own window is full) waits and tries again without
    touching the retry budget, up to ``max_local_wait_sec`` of total waiting.
    Remote throttling (the API answered with a rate-limit error) waits and
    retries while the budget lasts. Every other failure propagates unchanged.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        config: Optional[RateLimitConfig] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the invoker.

        Args:
            rate_limiter: Rate limiter shared by all outbound calls
            config: Rate limiting configuration (defaults to the limiter's)
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.rate_limiter = rate_limiter
        self.config = config or rate_limiter.config
        self.prometheus_exporter = prometheus_exporter

    async def invoke(
        self,
        op: Callable[[], Awaitable[T]],
        retries_remaining: Optional[int] = None,
    ) -> T:
        """
        Execute ``op`` once the rate limiter permits it.

        Args:
            op: Zero-argument coroutine factory performing one API round trip
            retries_remaining: Remote rate-limit retries allowed (defaults to config)

        Returns:
            Whatever ``op`` returns

        Raises:
            ExhaustedRetries: If local throttling outlasted ``max_local_wait_sec``
        """
        if retries_remaining is None:
            retries_remaining = self.config.max_retries
        backoff = self.config.backoff_sec
        local_waited = 0.0

        while True:
            if not self.rate_limiter.permit():
                if local_waited + backoff > self.config.max_local_wait_sec:
                    raise ExhaustedRetries(
                        f"Local rate limit still saturated after waiting {local_waited:.0f}s"
                    )
                logger.info(
                    f"Local rate limit reached (window frees in "
                    f"{self.rate_limiter.seconds_until_permit():.1f}s). Waiting {backoff:.2f}s before retrying."
                )
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_throttle("local")
                await asyncio.sleep(backoff)
                local_waited += backoff
                continue

            try:
                return await op()
            except Exception as e:
                if not is_rate_limited(e):
                    raise
                if retries_remaining <= 0:
                    logger.error(f"Rate limited (429) with no retries left: {e}")
                    raise

                logger.warning(
                    f"Rate limited (429): {e}. Retrying in {backoff:.2f}s "
                    f"({retries_remaining} retries left)"
                )
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_throttle("remote")
                await asyncio.sleep(backoff)
                retries_remaining -= 1

