"""
Rate limiting utilities for Gazeframe.

Keeps the sequential generator under the image service's rate limit by
spacing consecutive requests.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """
    Rate limit configuration.

    Attributes:
        request_delay: Seconds to wait between consecutive requests
        enabled: Whether pacing is active
    """

    request_delay: float = 3.0
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.request_delay < 0:
            raise ValueError("request_delay must not be negative")


class RequestPacer:
    """
    Fixed inter-request delay.

    Usage:
        pacer = RequestPacer(request_delay=3.0)
        for item in work:
            pacer.wait()  # no wait before the first request
            ... make API call ...

    Not thread-safe; the generator issues one request at a time.
    """

    def __init__(
        self,
        request_delay: float = 3.0,
        enabled: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the pacer.

        Args:
            request_delay: Delay in seconds between requests
            enabled: Whether pacing is active
            sleep: Wait function (injectable for tests)
        """
        if request_delay < 0:
            raise ValueError("request_delay must not be negative")
        self._delay = request_delay
        self._enabled = enabled
        self._sleep = sleep
        self._started = False

        # Stats
        self._total_requests = 0
        self._total_wait_time = 0.0

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "RequestPacer":
        return cls(request_delay=config.request_delay, enabled=config.enabled, sleep=sleep)

    @property
    def is_enabled(self) -> bool:
        """Check if pacing is enabled."""
        return self._enabled

    @property
    def request_delay(self) -> float:
        return self._delay

    def wait(self) -> float:
        """
        Wait before the next request.

        Returns:
            Wait time in seconds (0 for the first request or when disabled)
        """
        self._total_requests += 1
        if not self._started:
            self._started = True
            return 0.0
        if not self._enabled or self._delay == 0:
            return 0.0

        logger.debug(f"Waiting {self._delay:.1f}s before next request")
        self._sleep(self._delay)
        self._total_wait_time += self._delay
        return self._delay

    def get_stats(self) -> dict:
        """
        Get pacer statistics.

        Returns:
            Dictionary with total_requests, total_wait_time, request_delay
            and enabled
        """
        return {
            "total_requests": self._total_requests,
            "total_wait_time": self._total_wait_time,
            "request_delay": self._delay,
            "enabled": self._enabled,
        }

    def reset(self) -> None:
        """Reset pacer to initial state."""
        self._started = False
        self._total_requests = 0
        self._total_wait_time = 0.0
