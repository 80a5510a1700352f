"""Gazeframe exception hierarchy."""

from typing import Optional


class GazeframeError(Exception):
    """Base class for all gazeframe errors."""


class ConfigurationError(GazeframeError):
    """Invalid or missing configuration (token, TLS files, grid values)."""


class ManifestError(GazeframeError):
    """The manifest is missing, malformed, empty or inconsistent."""


class GenerationError(GazeframeError):
    """
    A request to the image-editing service failed.

    Attributes:
        status: HTTP-like status code when the service reported one
    """

    retryable = False

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitError(GenerationError):
    """The service rejected the request with a rate-limit signal (429)."""

    retryable = True

    def __init__(self, message: str = "Rate limited", status: Optional[int] = 429):
        super().__init__(message, status=status)


class EmptyOutputError(GenerationError):
    """The service reported success but returned no usable image."""
