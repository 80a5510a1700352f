"""Gazeframe utilities."""

from .files import atomic_write_bytes, atomic_write_text
from .rate_limit import RateLimitConfig, RequestPacer
from .retry import RetryConfig, RetryMachine

__all__ = [
    "atomic_write_bytes",
    "atomic_write_text",
    "RateLimitConfig",
    "RequestPacer",
    "RetryConfig",
    "RetryMachine",
]
