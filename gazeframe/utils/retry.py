"""
Retry logic for Gazeframe.

Acquisition retries are modelled as a small state machine so attempt
counts and backoff waits can be inspected directly:

    ATTEMPTING --success--> SUCCEEDED
    ATTEMPTING --retryable error, budget left--> BACKOFF --wait--> ATTEMPTING
    ATTEMPTING --retryable error, budget spent--> EXHAUSTED
    ATTEMPTING --other error--> EXHAUSTED
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar

from ..errors import RateLimitError
from ..types import RetryState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    backoff_seconds: float = 10.0
    retryable_errors: Tuple[Type[BaseException], ...] = (RateLimitError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must not be negative")


@dataclass
class RetryMachine:
    """
    Tracks one retry cycle.

    Drive it with ``record_success`` / ``record_failure`` after each
    attempt and ``complete_backoff`` after waiting. ``sleep`` is only used
    by ``run``.
    """
    config: RetryConfig = field(default_factory=RetryConfig)
    sleep: Callable[[float], None] = time.sleep
    state: RetryState = RetryState.ATTEMPTING
    attempts: int = 0
    backoffs: int = 0
    waited: float = 0.0
    last_error: Optional[BaseException] = None
    history: List[RetryState] = field(default_factory=lambda: [RetryState.ATTEMPTING])

    @property
    def attempts_left(self) -> int:
        return self.config.max_attempts - self.attempts

    @property
    def done(self) -> bool:
        return self.state in (RetryState.SUCCEEDED, RetryState.EXHAUSTED)

    def _transition(self, state: RetryState) -> None:
        self.state = state
        self.history.append(state)

    def _require(self, state: RetryState) -> None:
        if self.state is not state:
            raise RuntimeError(f"Invalid retry transition from {self.state.value}")

    def record_success(self) -> None:
        self._require(RetryState.ATTEMPTING)
        self.attempts += 1
        self._transition(RetryState.SUCCEEDED)

    def is_retryable(self, exc: BaseException) -> bool:
        """Configured error types, plus any error that flags itself retryable."""
        return isinstance(exc, self.config.retryable_errors) or getattr(exc, "retryable", False) is True

    def record_failure(self, exc: BaseException) -> RetryState:
        """Classify a failed attempt and move to BACKOFF or EXHAUSTED."""
        self._require(RetryState.ATTEMPTING)
        self.attempts += 1
        self.last_error = exc
        if self.is_retryable(exc) and self.attempts_left > 0:
            self._transition(RetryState.BACKOFF)
        else:
            self._transition(RetryState.EXHAUSTED)
        return self.state

    def complete_backoff(self) -> None:
        self._require(RetryState.BACKOFF)
        self.backoffs += 1
        self.waited += self.config.backoff_seconds
        self._transition(RetryState.ATTEMPTING)

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call func until it succeeds or the machine is exhausted.

        Returns:
            The result of func on success

        Raises:
            The last exception once the machine is exhausted
        """
        while True:
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                state = self.record_failure(exc)
                if state is RetryState.EXHAUSTED:
                    if self.is_retryable(exc):
                        logger.warning(f"All {self.config.max_attempts} attempts failed: {exc}")
                    raise
                logger.info(
                    f"Rate limited. Waiting {self.config.backoff_seconds:.0f}s before retry... "
                    f"({self.attempts_left} retries left)"
                )
                self.sleep(self.config.backoff_seconds)
                self.complete_backoff()
            else:
                self.record_success()
                return result
